from datetime import datetime, timezone
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from app.core.exceptions import EducationalAreaNotFoundError, ProgramNotFoundError
from app.core.security import (
    AuthContext,
    can_view_program,
    get_auth_context,
    require_admin_or_coordinator,
    require_program_manager,
    require_program_reader,
)
from app.database import get_db
from app.repositories.program_repository import ProgramRepository
from app.schemas.program import (
    EducationalArea,
    EducationalAreaCreate,
    EducationalAreaUpdate,
    EducationalAreaWithLeader,
    ErrorResponse,
    Program,
    ProgramCreate,
    ProgramUpdate,
    StatisticsResponse,
)
from app.schemas.user import UserRecord
from app.services.program_service import ProgramService
from app.services.user_service import UserService, get_user_service

router = APIRouter(
    prefix="/service/program",
    tags=["programs"],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
logger = logging.getLogger(__name__)


def get_program_service(
    db: Session = Depends(get_db),
    user_service: UserService = Depends(get_user_service),
) -> ProgramService:
    return ProgramService(ProgramRepository(db), user_service)


# 1. CREATE PROGRAM
@router.post(
    "",
    response_model=Program,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}},
)
def create_program(
    program: ProgramCreate,
    auth: AuthContext = Depends(get_auth_context),
    service: ProgramService = Depends(get_program_service),
):
    """
    Create a new program. Coordinators and administrators only.

    - **programName**: unique name, 2-100 characters
    - **email**: optional unique contact address
    """
    user = require_admin_or_coordinator(auth, "create programs")
    logger.info(f"Creating program '{program.program_name}' by user {user.user_id} ({user.role})")
    return service.create_program(program)


# 2. LIST / SEARCH PROGRAMS
@router.get("", response_model=List[Program])
def read_programs(
    search: Optional[str] = Query(None, description="Case-insensitive name fragment"),
    auth: AuthContext = Depends(get_auth_context),
    service: ProgramService = Depends(get_program_service),
):
    """
    List programs sorted by name, optionally filtered by a name fragment.
    Plain users only see the programs they have access to.
    """
    user = auth.require_authentication()
    programs = service.get_programs(search)

    if not user.is_admin():
        programs = [p for p in programs if can_view_program(user, p.program_id)]
        logger.debug(f"Filtered to {len(programs)} programs for user {user.user_id}")
    return programs


# 3. STATISTICS
@router.get("/statistics", response_model=StatisticsResponse)
def read_program_statistics(
    auth: AuthContext = Depends(get_auth_context),
    service: ProgramService = Depends(get_program_service),
):
    user = require_admin_or_coordinator(auth, "view statistics")
    return StatisticsResponse(
        statistics=service.get_program_statistics(),
        requested_by=user.user_id,
        requested_at=datetime.now(timezone.utc),
    )


# 4. READ PROGRAM BY NAME
@router.get("/name/{program_name}", response_model=Program)
def read_program_by_name(
    program_name: str,
    auth: AuthContext = Depends(get_auth_context),
    service: ProgramService = Depends(get_program_service),
):
    auth.require_authentication()
    program = service.get_program_by_name(program_name)
    if program is None:
        raise ProgramNotFoundError(program_name, field="name")
    require_program_reader(auth, program.program_id)
    return program


# 5. READ PROGRAM BY ID
@router.get("/{program_id}", response_model=Program)
def read_program(
    program_id: str,
    auth: AuthContext = Depends(get_auth_context),
    service: ProgramService = Depends(get_program_service),
):
    require_program_reader(auth, program_id)
    program = service.get_program_by_id(program_id)
    if program is None:
        raise ProgramNotFoundError(program_id)
    return program


# 6. UPDATE PROGRAM (partial)
@router.put("/{program_id}", response_model=Program, responses={409: {"model": ErrorResponse}})
def update_program(
    program_id: str,
    program_update: ProgramUpdate,
    auth: AuthContext = Depends(get_auth_context),
    service: ProgramService = Depends(get_program_service),
):
    """
    Update name, email or image. Absent or blank fields keep their value and
    educational areas are never replaced here.
    """
    user = require_program_manager(auth, program_id)
    logger.info(f"Updating program {program_id} by user {user.user_id} ({user.role})")
    return service.update_program(program_id, program_update)


# 7. DELETE PROGRAM
@router.delete("/{program_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_program(
    program_id: str,
    auth: AuthContext = Depends(get_auth_context),
    service: ProgramService = Depends(get_program_service),
):
    user = auth.require_admin()
    logger.warning(f"DELETING PROGRAM: {program_id} by admin user: {user.user_id}")
    service.delete_program(program_id)
    return None


# 8. CREATE EDUCATIONAL AREA
@router.post(
    "/{program_id}/area",
    response_model=Program,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}},
)
def create_educational_area(
    program_id: str,
    area: EducationalAreaCreate,
    auth: AuthContext = Depends(get_auth_context),
    service: ProgramService = Depends(get_program_service),
):
    user = require_program_manager(auth, program_id)
    logger.info(f"Creating educational area '{area.name}' for program {program_id} by user {user.user_id} ({user.role})")
    return service.create_educational_area(area, program_id)


# 9. LIST EDUCATIONAL AREAS
@router.get("/{program_id}/area", response_model=List[EducationalArea])
def read_educational_areas(
    program_id: str,
    auth: AuthContext = Depends(get_auth_context),
    service: ProgramService = Depends(get_program_service),
):
    require_program_reader(auth, program_id)
    return service.get_educational_areas(program_id)


# 10. READ EDUCATIONAL AREA
@router.get(
    "/{program_id}/area/{area_id}",
    response_model=EducationalAreaWithLeader,
    response_model_exclude_unset=True,
)
def read_educational_area(
    program_id: str,
    area_id: str,
    include_leader: bool = Query(False, alias="includeLeader"),
    auth: AuthContext = Depends(get_auth_context),
    service: ProgramService = Depends(get_program_service),
):
    """
    Get one educational area. With **includeLeader=true** the leader is
    resolved as well; if the User Service cannot answer, `leader` is null.
    """
    require_program_reader(auth, program_id)
    if include_leader:
        return service.get_educational_area_with_leader(program_id, area_id)

    area = service.get_educational_area_by_id(program_id, area_id)
    if area is None:
        raise EducationalAreaNotFoundError(program_id, area_id)
    return EducationalAreaWithLeader(**area.model_dump())


# 11. READ EDUCATIONAL AREA LEADER
@router.get("/{program_id}/area/{area_id}/leader", response_model=UserRecord)
def read_educational_area_leader(
    program_id: str,
    area_id: str,
    auth: AuthContext = Depends(get_auth_context),
    service: ProgramService = Depends(get_program_service),
):
    require_program_reader(auth, program_id)
    return service.get_educational_area_leader(program_id, area_id)


# 12. UPDATE EDUCATIONAL AREA
@router.put("/{program_id}/area/{area_id}", response_model=EducationalArea)
def update_educational_area(
    program_id: str,
    area_id: str,
    area_update: EducationalAreaUpdate,
    auth: AuthContext = Depends(get_auth_context),
    service: ProgramService = Depends(get_program_service),
):
    user = require_program_manager(auth, program_id)
    logger.info(f"Updating educational area {area_id} for program {program_id} by user {user.user_id} ({user.role})")
    return service.update_educational_area(program_id, area_id, area_update)


# 13. DELETE EDUCATIONAL AREA
@router.delete("/{program_id}/area/{area_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_educational_area(
    program_id: str,
    area_id: str,
    auth: AuthContext = Depends(get_auth_context),
    service: ProgramService = Depends(get_program_service),
):
    user = auth.require_admin()
    logger.warning(f"DELETING EDUCATIONAL AREA: {area_id} from program {program_id} by admin: {user.user_id}")
    service.delete_educational_area(program_id, area_id)
    return None
