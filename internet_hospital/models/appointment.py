from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Boolean, Enum as SQLEnum
from sqlalchemy.sql import func
import enum

from ..core.database import Base

class InvalidStatusTransition(ValueError):
    """Raised when an appointment is asked to move along an undefined edge."""

    def __init__(self, current: "AppointmentStatus", target: "AppointmentStatus"):
        super().__init__(f"Cannot move appointment from {current.value} to {target.value}")
        self.current = current
        self.target = target

class AppointmentStatus(str, enum.Enum):
    OPEN = "open"
    RESERVED = "reserved"
    CANCELED = "canceled"

    def can_become(self, target: "AppointmentStatus") -> bool:
        return target in _TRANSITIONS[self]

    def _move_to(self, target: "AppointmentStatus") -> "AppointmentStatus":
        if not self.can_become(target):
            raise InvalidStatusTransition(self, target)
        return target

    def reserve(self) -> "AppointmentStatus":
        """Patient subscription: open -> reserved."""
        return self._move_to(AppointmentStatus.RESERVED)

    def release(self) -> "AppointmentStatus":
        """Patient unsubscription: reserved -> open."""
        return self._move_to(AppointmentStatus.OPEN)

    def cancel(self) -> "AppointmentStatus":
        """Doctor cancellation: reserved -> canceled."""
        return self._move_to(AppointmentStatus.CANCELED)

    @property
    def is_deletable(self) -> bool:
        return self == AppointmentStatus.OPEN

_TRANSITIONS = {
    AppointmentStatus.OPEN: frozenset({AppointmentStatus.RESERVED}),
    AppointmentStatus.RESERVED: frozenset({AppointmentStatus.OPEN, AppointmentStatus.CANCELED}),
    AppointmentStatus.CANCELED: frozenset(),
}

class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)

    doctor_id = Column(Integer, ForeignKey("doctors.user_id", ondelete="CASCADE"), nullable=False, index=True)
    # Reserving patient; null while the slot is open
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    address = Column(String(255), nullable=True)
    status = Column(SQLEnum(AppointmentStatus), nullable=False, default=AppointmentStatus.OPEN, index=True)
    is_allow_patient_info = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, server_default=func.now())

    def __repr__(self):
        return (
            f"<Appointment(id={self.id}, doctor_id={self.doctor_id}, user_id={self.user_id}, "
            f"status='{self.status}', start='{self.start_time}')>"
        )
