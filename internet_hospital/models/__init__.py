from .user import User, UserStatus, RefreshToken
from .specialization import Specialization
from .doctor import Doctor
from .diploma import Diploma
from .passport import Passport
from .appointment import Appointment, AppointmentStatus, InvalidStatusTransition
from .notification import Notification

__all__ = [
    "User",
    "UserStatus",
    "RefreshToken",
    "Specialization",
    "Doctor",
    "Diploma",
    "Passport",
    "Appointment",
    "AppointmentStatus",
    "InvalidStatusTransition",
    "Notification",
]
