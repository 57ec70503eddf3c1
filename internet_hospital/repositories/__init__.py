from .appointment_repository import AppointmentRepository
from .notification_repository import NotificationRepository
from .unit_of_work import SqlAlchemyUnitOfWork
from .user_repository import DoctorRepository, UserRepository

__all__ = [
    "AppointmentRepository",
    "NotificationRepository",
    "SqlAlchemyUnitOfWork",
    "DoctorRepository",
    "UserRepository",
]
