# app/models/program.py
import uuid

from sqlalchemy import Column, Integer, String, JSON
from app.database import Base


def _new_program_id() -> str:
    return uuid.uuid4().hex


class Program(Base):
    """A program document with its educational areas embedded as JSON"""
    __tablename__ = "programs"

    program_id = Column(String(64), primary_key=True, default=_new_program_id)
    program_name = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=True)
    image = Column(String(1024), nullable=True)

    # Embedded areas; always reassign the whole list, in-place edits are not tracked
    educational_areas = Column(JSON, nullable=False, default=list)
    area_count = Column(Integer, nullable=False, default=0, index=True)

    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<Program {self.program_id} {self.program_name!r}>"
