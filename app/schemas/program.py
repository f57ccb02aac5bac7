from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from app.schemas.user import UserRecord


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True
    )


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


# Educational areas
class EducationalAreaBase(CamelModel):
    name: str = Field(..., min_length=2, max_length=80, examples=["Software Engineering"])
    leader_id: Optional[str] = Field(
        None,
        description="User Service ID of the area leader (resolved on read)"
    )
    image: Optional[str] = None


class EducationalAreaCreate(EducationalAreaBase):
    @field_validator("leader_id", "image", mode="before")
    @classmethod
    def blank_as_missing(cls, value):
        return _blank_to_none(value)


class EducationalAreaUpdate(CamelModel):
    """Name is always applied; leader and image only when sent"""
    name: Optional[str] = Field(None, max_length=80)
    leader_id: Optional[str] = None
    image: Optional[str] = None

    @field_validator("leader_id", "image", mode="before")
    @classmethod
    def blank_as_missing(cls, value):
        return _blank_to_none(value)


class EducationalArea(EducationalAreaBase):
    educational_area_id: str = Field(..., examples=["3f2a9cA01"])


class EducationalAreaWithLeader(EducationalArea):
    leader: Optional[UserRecord] = Field(
        None,
        description="Resolved leader, null when unassigned or unavailable"
    )


# Programs
class ProgramBase(CamelModel):
    program_name: str = Field(..., min_length=2, max_length=100, examples=["Systems Engineering"])
    email: Optional[EmailStr] = None
    image: Optional[str] = None


class ProgramCreate(ProgramBase):
    @field_validator("email", "image", mode="before")
    @classmethod
    def blank_as_missing(cls, value):
        return _blank_to_none(value)


class ProgramUpdate(CamelModel):
    """Partial update; absent or blank fields keep their stored value"""
    program_name: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    image: Optional[str] = None

    @field_validator("email", "image", mode="before")
    @classmethod
    def blank_as_missing(cls, value):
        return _blank_to_none(value)


class Program(ProgramBase):
    program_id: str
    educational_areas: List[EducationalArea] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "programId": "3f2a9c",
                "programName": "Systems Engineering",
                "email": "systems@university.edu",
                "image": None,
                "educationalAreas": [
                    {"educationalAreaId": "3f2a9cA01", "name": "Software Engineering",
                     "leaderId": "u-1001", "image": None}
                ]
            }
        }
    )


# Statistics
class ProgramStatistics(CamelModel):
    total_programs: int
    programs_with_areas: int
    programs_without_areas: int
    total_educational_areas: int


class StatisticsResponse(CamelModel):
    statistics: ProgramStatistics
    requested_by: str
    requested_at: datetime


# Errors
class ErrorResponse(BaseModel):
    error: str
    message: str
    timestamp: datetime
    path: str
    status: int
    service: str
