"""
Business rules for programs and their embedded educational areas.

Areas are only ever reached through their program: every area mutation
loads the program, edits a copy of its area list and saves the whole
document. Saves are guarded by the program's version column; area
mutations that lose a race are retried against the fresh document.
"""
from typing import Callable, List, Optional, Tuple
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from app.core import config
from app.core.exceptions import (
    ConcurrentModificationError,
    DuplicateProgramError,
    EducationalAreaNotFoundError,
    InvalidProgramDataError,
    ProgramNotFoundError,
)
from app.models.program import Program
from app.repositories.program_repository import ProgramRepository
from app.schemas.program import (
    EducationalArea,
    EducationalAreaCreate,
    EducationalAreaUpdate,
    EducationalAreaWithLeader,
    ProgramCreate,
    ProgramStatistics,
    ProgramUpdate,
)
from app.schemas.user import UserRecord
from app.services.user_service import UserService

logger = logging.getLogger(__name__)

PROGRAM_NAME_MIN, PROGRAM_NAME_MAX = 2, 100
AREA_NAME_MIN, AREA_NAME_MAX = 2, 80


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _check_length(value: str, low: int, high: int, label: str) -> None:
    if not low <= len(value) <= high:
        raise InvalidProgramDataError(f"{label} must be between {low} and {high} characters")


def build_area_id(program_id: str, sequence: int) -> str:
    return f"{program_id}A{sequence:02d}"


def next_area_id(program_id: str, areas: List[EducationalArea]) -> str:
    """<programId>A<NN> with NN = current area count + 1, skipping IDs still in use"""
    taken = {a.educational_area_id for a in areas}
    sequence = len(areas) + 1
    while build_area_id(program_id, sequence) in taken:
        sequence += 1
    return build_area_id(program_id, sequence)


def _find_area_index(areas: List[EducationalArea], area_id: str) -> int:
    for index, area in enumerate(areas):
        if area.educational_area_id == area_id:
            return index
    return -1


class ProgramService:
    def __init__(
        self,
        repository: ProgramRepository,
        user_service: Optional[UserService] = None,
        write_retries: Optional[int] = None,
    ):
        self.repository = repository
        self.user_service = user_service
        self.write_retries = max(1, write_retries if write_retries is not None
                                 else config.WRITE_CONFLICT_RETRIES)

    # ------------------------------------------------------------------
    # Programs
    # ------------------------------------------------------------------
    def create_program(self, data: ProgramCreate) -> Program:
        if _is_blank(data.program_name):
            raise InvalidProgramDataError("Program name is required")
        name = data.program_name.strip()
        _check_length(name, PROGRAM_NAME_MIN, PROGRAM_NAME_MAX, "Program name")

        if self.repository.find_by_name(name) is not None:
            raise DuplicateProgramError(f"Program with name '{name}' already exists")
        if data.email and self.repository.find_by_email(data.email) is not None:
            raise DuplicateProgramError(f"Program with email '{data.email}' already exists")

        program = Program(
            program_name=name,
            email=data.email,
            image=data.image,
            educational_areas=[],
        )
        saved = self._save_program(program, name)
        logger.info(f"Program created with ID: {saved.program_id}")
        return saved

    def get_programs(self, search: Optional[str] = None) -> List[Program]:
        if _is_blank(search):
            return self.repository.find_all_sorted_by_name()
        return self.repository.find_by_name_contains(search.strip(), case_insensitive=True)

    def get_program_statistics(self) -> ProgramStatistics:
        return ProgramStatistics(
            total_programs=self.repository.count(),
            programs_with_areas=self.repository.count_with_non_empty_areas(),
            programs_without_areas=self.repository.count_with_empty_or_missing_areas(),
            total_educational_areas=self.repository.sum_areas(),
        )

    def get_program_by_id(self, program_id: str) -> Optional[Program]:
        if _is_blank(program_id):
            raise InvalidProgramDataError("Program ID cannot be empty")
        return self.repository.find_by_id(program_id)

    def get_program_by_name(self, program_name: str) -> Optional[Program]:
        if _is_blank(program_name):
            raise InvalidProgramDataError("Program name cannot be empty")
        return self.repository.find_by_name(program_name)

    def update_program(self, program_id: str, patch: ProgramUpdate) -> Program:
        program = self._require_program(program_id)

        # Validate the whole patch before touching the loaded document
        new_name = None
        if not _is_blank(patch.program_name):
            new_name = patch.program_name.strip()
            _check_length(new_name, PROGRAM_NAME_MIN, PROGRAM_NAME_MAX, "Program name")
            if new_name != program.program_name:
                owner = self.repository.find_by_name(new_name)
                if owner is not None and owner.program_id != program_id:
                    raise DuplicateProgramError(f"Program with name '{new_name}' already exists")

        if patch.email:
            owner = self.repository.find_by_email(patch.email)
            if owner is not None and owner.program_id != program_id:
                raise DuplicateProgramError(f"Program with email '{patch.email}' already exists")

        if new_name:
            program.program_name = new_name
        if patch.email:
            program.email = patch.email
        if patch.image:
            program.image = patch.image

        # educational_areas is left alone: areas change only through the area operations
        return self._save_program(program, program.program_name)

    def delete_program(self, program_id: str) -> None:
        program = self._require_program(program_id)
        area_count = len(program.educational_areas or [])
        self.repository.delete(program)
        logger.info(f"Program {program_id} deleted with {area_count} educational areas")

    # ------------------------------------------------------------------
    # Educational areas
    # ------------------------------------------------------------------
    def create_educational_area(self, area: EducationalAreaCreate, program_id: str) -> Program:
        if _is_blank(area.name):
            raise InvalidProgramDataError("Educational area name is required")
        name = area.name.strip()
        _check_length(name, AREA_NAME_MIN, AREA_NAME_MAX, "Educational area name")

        def mutate(program: Program, areas: List[EducationalArea]) -> EducationalArea:
            if any(a.name.lower() == name.lower() for a in areas):
                raise InvalidProgramDataError(
                    f"Educational area '{name}' already exists in program {program_id}"
                )
            created = EducationalArea(
                educational_area_id=next_area_id(program.program_id, areas),
                name=name,
                leader_id=area.leader_id,
                image=area.image,
            )
            areas.append(created)
            return created

        program, created = self._mutate_areas(program_id, mutate)
        logger.info(f"Educational area {created.educational_area_id} created in program {program_id}")
        return program

    def get_educational_areas(self, program_id: str) -> List[EducationalArea]:
        return self._load_areas(self._require_program(program_id))

    def get_educational_area_by_id(self, program_id: str, area_id: str) -> Optional[EducationalArea]:
        if _is_blank(area_id):
            raise InvalidProgramDataError("Educational area ID cannot be empty")
        areas = self._load_areas(self._require_program(program_id))
        index = _find_area_index(areas, area_id)
        return areas[index] if index >= 0 else None

    def update_educational_area(
        self, program_id: str, area_id: str, patch: EducationalAreaUpdate
    ) -> EducationalArea:
        if _is_blank(patch.name):
            raise InvalidProgramDataError("Educational area name is required")
        name = patch.name.strip()
        _check_length(name, AREA_NAME_MIN, AREA_NAME_MAX, "Educational area name")

        def mutate(program: Program, areas: List[EducationalArea]) -> EducationalArea:
            index = _find_area_index(areas, area_id)
            if index < 0:
                raise EducationalAreaNotFoundError(program_id, area_id)
            if any(a.name.lower() == name.lower() and a.educational_area_id != area_id
                   for a in areas):
                raise InvalidProgramDataError(
                    f"Educational area '{name}' already exists in program {program_id}"
                )
            current = areas[index]
            updated = current.model_copy(update={
                "name": name,
                "leader_id": patch.leader_id if patch.leader_id is not None else current.leader_id,
                "image": patch.image if patch.image is not None else current.image,
            })
            areas[index] = updated
            return updated

        _, updated = self._mutate_areas(program_id, mutate)
        logger.info(f"Educational area {area_id} updated in program {program_id}")
        return updated

    def delete_educational_area(self, program_id: str, area_id: str) -> None:
        def mutate(program: Program, areas: List[EducationalArea]) -> EducationalArea:
            index = _find_area_index(areas, area_id)
            if index < 0:
                raise EducationalAreaNotFoundError(program_id, area_id)
            return areas.pop(index)

        self._mutate_areas(program_id, mutate)
        logger.info(f"Educational area {area_id} deleted from program {program_id}")

    def get_educational_area_leader(self, program_id: str, area_id: str) -> UserRecord:
        area = self._require_area(program_id, area_id)
        if _is_blank(area.leader_id):
            raise InvalidProgramDataError(f"No leader assigned to educational area: {area_id}")

        leader = self._user_lookup().get_user_by_id(area.leader_id)
        if leader is None:
            raise InvalidProgramDataError(f"Leader user not found with ID: {area.leader_id}")
        return leader

    def get_educational_area_with_leader(self, program_id: str, area_id: str) -> EducationalAreaWithLeader:
        """Area plus its leader; lookup trouble leaves the leader unknown"""
        area = self._require_area(program_id, area_id)
        leader = None
        if not _is_blank(area.leader_id) and self.user_service is not None:
            try:
                leader = self.user_service.get_user_by_id(area.leader_id)
            except Exception as e:
                logger.warning(f"Leader lookup for area {area_id} failed: {str(e)}")
        return EducationalAreaWithLeader(**area.model_dump(), leader=leader)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _require_program(self, program_id: str) -> Program:
        if _is_blank(program_id):
            raise InvalidProgramDataError("Program ID cannot be empty")
        program = self.repository.find_by_id(program_id)
        if program is None:
            raise ProgramNotFoundError(program_id)
        return program

    def _require_area(self, program_id: str, area_id: str) -> EducationalArea:
        area = self.get_educational_area_by_id(program_id, area_id)
        if area is None:
            raise EducationalAreaNotFoundError(program_id, area_id)
        return area

    def _user_lookup(self) -> UserService:
        if self.user_service is None:
            raise RuntimeError("ProgramService was built without a UserService")
        return self.user_service

    @staticmethod
    def _load_areas(program: Program) -> List[EducationalArea]:
        return [EducationalArea.model_validate(a) for a in (program.educational_areas or [])]

    def _save_program(self, program: Program, name: str) -> Program:
        try:
            return self.repository.save(program)
        except IntegrityError:
            # Unique index on name/email caught a concurrent writer
            logger.warning(f"Integrity error saving program '{name}'", exc_info=True)
            raise DuplicateProgramError(f"Program with name '{name}' or its email already exists")
        except StaleDataError:
            self.repository.forget(program)
            raise ConcurrentModificationError(
                f"Program {program.program_id} was modified concurrently, retry the request"
            )

    def _mutate_areas(
        self,
        program_id: str,
        mutate: Callable[[Program, List[EducationalArea]], EducationalArea],
    ) -> Tuple[Program, EducationalArea]:
        """Load, edit a copy of the area list, save the whole program; retry on version conflict"""
        for attempt in range(1, self.write_retries + 1):
            program = self._require_program(program_id)
            areas = self._load_areas(program)
            result = mutate(program, areas)
            program.educational_areas = [a.model_dump() for a in areas]
            try:
                return self.repository.save(program), result
            except StaleDataError:
                self.repository.forget(program)
                logger.warning(f"Version conflict on program {program_id} (attempt {attempt}/{self.write_retries})")

        raise ConcurrentModificationError(
            f"Program {program_id} kept changing underneath the request, retry later"
        )
