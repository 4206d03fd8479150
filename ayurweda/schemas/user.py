from typing import Optional, List, Dict

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from ..core.security import UserRole
from .auth import UserResponse, check_name
from .common import PageMeta

class AdminUserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: UserRole
    phone: Optional[str] = Field(None, max_length=20)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return check_name(v)

class AdminUserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        return check_name(v)

    @model_validator(mode="after")
    def at_least_one_field(self):
        if self.name is None and self.email is None and self.role is None:
            raise ValueError("At least one field (name, email, role) is required")
        return self

class RoleUpdate(BaseModel):
    role: UserRole

class StatusUpdate(BaseModel):
    is_active: bool

class UserList(BaseModel):
    users: List[UserResponse]
    pagination: PageMeta

class UserStats(BaseModel):
    total: int
    active: int
    inactive: int
    by_role: Dict[str, int]
