from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ..core.security import UserRole

def check_name(value: Optional[str]) -> Optional[str]:
    """Trim a person's name, rejecting one that is only whitespace."""
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("Name is required")
    return value

class UserRegister(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return check_name(v)

class UserLogin(BaseModel):
    email: EmailStr
    password: str

class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    role: UserRole
    phone: Optional[str] = None
    address: Optional[str] = None
    profile_picture: Optional[str] = None
    is_active: bool = True
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None

class TokenResponse(BaseModel):
    token: str
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    role: UserRole
    name: str
    user: UserResponse

class ProfileUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = Field(None, max_length=255)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return check_name(v)

class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6)

class ProfilePictureUpdate(BaseModel):
    profile_picture: str = Field(..., min_length=1, max_length=500)

    @field_validator("profile_picture")
    @classmethod
    def check_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://", "data:image/")):
            raise ValueError("Profile picture must be an http(s) URL or an image data URI")
        return v

class Preferences(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    notifications_enabled: bool = True
    email_updates: bool = True
    theme: str = Field("light", pattern="^(light|dark)$")

class ContactResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    role: UserRole

class ContactList(BaseModel):
    contacts: List[ContactResponse]
