from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from ..core.security import UserRole
from ..models.user import UserStatus


def _check_password_strength(value: str) -> str:
    if len(value) < 8:
        raise ValueError("Password must be at least 8 characters long")
    if not any(ch.isdigit() for ch in value):
        raise ValueError("Password must contain a digit")
    if not any(ch.isupper() for ch in value) or not any(ch.islower() for ch in value):
        raise ValueError("Password must contain upper and lower case letters")
    return value


class UserRegister(BaseModel):
    email: EmailStr
    password: str
    role: UserRole = UserRole.PATIENT
    first_name: str = Field(..., min_length=1, max_length=100)
    second_name: str = Field(..., min_length=1, max_length=100)
    third_name: Optional[str] = Field(None, max_length=100)
    birth_date: Optional[date] = None
    specialization_id: Optional[int] = None

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _check_password_strength(value)

    @model_validator(mode="after")
    def validate_role(self) -> "UserRegister":
        if self.role == UserRole.ADMIN:
            raise ValueError("Administrators cannot self-register")
        if self.role == UserRole.DOCTOR and self.specialization_id is None:
            raise ValueError("Doctors must choose a specialization")
        return self


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: int
    email: str
    role: UserRole
    status: UserStatus
    first_name: str
    second_name: str
    third_name: Optional[str] = None
    avatar_url: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class ChangePassword(BaseModel):
    current_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, value: str) -> str:
        return _check_password_strength(value)


class UserStatusUpdate(BaseModel):
    status: UserStatus


class DoctorApproval(BaseModel):
    is_approved: bool


class DocumentValidation(BaseModel):
    is_valid: bool
