from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ..models.user import UserStatus


class PatientModel(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    second_name: str = Field(..., min_length=1, max_length=100)
    third_name: Optional[str] = Field(None, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=20, pattern=r"^\+?[0-9 ()-]{5,20}$")
    birth_date: Optional[date] = None

    @field_validator("first_name", "second_name", "third_name")
    @classmethod
    def normalize_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("Name must not be blank")
        return value[0].upper() + value[1:].lower()

    @field_validator("birth_date")
    @classmethod
    def validate_birth_date(cls, value: Optional[date]) -> Optional[date]:
        if value is not None and value > date.today():
            raise ValueError("Birth date cannot be in the future")
        return value


class PatientProfile(BaseModel):
    id: int
    email: str
    first_name: str
    second_name: str
    third_name: Optional[str] = None
    phone_number: Optional[str] = None
    birth_date: Optional[date] = None
    avatar_url: Optional[str] = None
    status: UserStatus
    passport_urls: List[str] = Field(default_factory=list)


class AvatarResponse(BaseModel):
    avatar_url: Optional[str] = None
