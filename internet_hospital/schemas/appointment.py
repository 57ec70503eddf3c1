from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..models.appointment import AppointmentStatus
from .common import PageParameters


def to_local_naive(value: Optional[datetime]) -> Optional[datetime]:
    """Appointment times are stored as naive local time."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


class AppointmentCreate(BaseModel):
    start_time: datetime
    end_time: datetime
    address: Optional[str] = Field(None, max_length=255)

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_time(cls, value: datetime) -> datetime:
        return to_local_naive(value)

    @model_validator(mode="after")
    def validate_time_range(self) -> "AppointmentCreate":
        if self.end_time <= self.start_time:
            raise ValueError("Appointment must end after it starts")
        return self


class AppointmentModel(BaseModel):
    """Appointment as the owning doctor sees it."""

    id: int
    user_id: Optional[int] = None
    user_first_name: Optional[str] = None
    user_second_name: Optional[str] = None
    address: Optional[str] = None
    start_time: datetime
    end_time: datetime
    status: AppointmentStatus
    is_allow_patient_info: bool = False


class AppointmentForPatient(BaseModel):
    id: int
    user_id: Optional[int] = None
    doctor_id: int
    doctor_first_name: str
    doctor_second_name: str
    doctor_specialization: Optional[str] = None
    address: Optional[str] = None
    start_time: datetime
    end_time: datetime
    status: AppointmentStatus
    is_allow_patient_info: bool


class AvailableAppointmentModel(BaseModel):
    id: int
    doctor_id: int
    address: Optional[str] = None
    start_time: datetime
    end_time: datetime

    class Config:
        from_attributes = True


class AppointmentSubscribe(BaseModel):
    id: int
    is_allow_patient_info: bool = False


class ChangePatientInfoAccess(BaseModel):
    appointment_id: int
    is_allow_patient_info: bool


class AppointmentHistoryParameters(PageParameters):
    search_by_name: Optional[str] = None
    from_time: Optional[datetime] = None
    till_time: Optional[datetime] = None
    statuses: List[AppointmentStatus] = Field(default_factory=list)

    @field_validator("from_time", "till_time")
    @classmethod
    def normalize_time(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_local_naive(value)


class AppointmentSearchParameters(PageParameters):
    doctor_id: int
    from_time: datetime
    till_time: Optional[datetime] = None

    @field_validator("from_time", "till_time")
    @classmethod
    def normalize_time(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_local_naive(value)
