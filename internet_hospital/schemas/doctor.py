from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field

from .common import PageParameters


class DoctorModel(BaseModel):
    id: int
    first_name: str
    second_name: str
    third_name: Optional[str] = None
    avatar_url: Optional[str] = None
    specialization: Optional[str] = None


class DoctorDetailedModel(DoctorModel):
    birth_date: Optional[date] = None
    address: Optional[str] = None
    doctors_info: Optional[str] = None
    license_url: Optional[str] = None
    diploma_urls: List[str] = Field(default_factory=list)


class DoctorSearchParameters(PageParameters):
    search_by_name: Optional[str] = None
    search_by_specialization: Optional[int] = None


class DoctorUpdate(BaseModel):
    address: Optional[str] = Field(None, max_length=255)
    doctors_info: Optional[str] = None
    specialization_id: Optional[int] = None


class SpecializationResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None

    class Config:
        from_attributes = True
