from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class UserRecord(BaseModel):
    """User as returned by the User Service; passed through unmodified"""
    id_user: str = Field(..., description="Identifier of the user in the User Service")
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "idUser": "u-1001",
                "name": "Ana Torres",
                "email": "ana.torres@university.edu",
                "phone": "+57 300 000 0000"
            }
        }
    )
