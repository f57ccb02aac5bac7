# app/repositories/program_repository.py
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.program import Program


class ProgramRepository:
    """Collection-style access to program documents"""

    def __init__(self, db: Session):
        self.db = db

    def find_all(self) -> List[Program]:
        return self.db.query(Program).all()

    def find_all_sorted_by_name(self) -> List[Program]:
        return self.db.query(Program).order_by(Program.program_name).all()

    def find_by_id(self, program_id: str) -> Optional[Program]:
        return self.db.get(Program, program_id)

    def find_by_name(self, program_name: str) -> Optional[Program]:
        return self.db.query(Program).filter(Program.program_name == program_name).first()

    def find_by_email(self, email: str) -> Optional[Program]:
        return self.db.query(Program).filter(
            func.lower(Program.email) == func.lower(email)
        ).first()

    def find_by_name_contains(self, term: str, case_insensitive: bool = True) -> List[Program]:
        if case_insensitive:
            # SQLite's lower() only folds ASCII, so accented names are matched here
            needle = term.casefold()
            return [p for p in self.find_all_sorted_by_name()
                    if needle in p.program_name.casefold()]
        condition = Program.program_name.contains(term, autoescape=True)
        return self.db.query(Program).filter(condition).order_by(Program.program_name).all()

    def save(self, program: Program) -> Program:
        """Insert or overwrite the whole document; flush errors propagate to the caller"""
        if program.educational_areas is None:
            program.educational_areas = []
        program.area_count = len(program.educational_areas)
        self.db.add(program)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(program)
        return program

    def delete(self, program: Program) -> None:
        self.db.delete(program)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def delete_by_id(self, program_id: str) -> None:
        program = self.find_by_id(program_id)
        if program is not None:
            self.delete(program)

    def count(self) -> int:
        return self.db.query(func.count(Program.program_id)).scalar() or 0

    def count_with_non_empty_areas(self) -> int:
        return self.db.query(func.count(Program.program_id)).filter(
            Program.area_count > 0
        ).scalar() or 0

    def count_with_empty_or_missing_areas(self) -> int:
        return self.db.query(func.count(Program.program_id)).filter(
            (Program.area_count == 0) | (Program.area_count.is_(None))
        ).scalar() or 0

    def sum_areas(self) -> int:
        return self.db.query(func.coalesce(func.sum(Program.area_count), 0)).scalar() or 0

    def forget(self, program: Program) -> None:
        """Detach a stale copy so the next lookup reads the stored document"""
        if program in self.db:
            self.db.expunge(program)
