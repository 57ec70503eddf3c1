from sqlalchemy.orm import Session

from .appointment_repository import AppointmentRepository
from .notification_repository import NotificationRepository
from .user_repository import DoctorRepository, UserRepository


class SqlAlchemyUnitOfWork:
    """Groups repository changes into one commit.

    Changes are only persisted by an explicit ``commit()``; leaving the
    ``with`` block any other way rolls them back.
    """

    def __init__(self, session: Session):
        self.session = session
        self.appointments = AppointmentRepository(session)
        self.notifications = NotificationRepository(session)
        self.users = UserRepository(session)
        self.doctors = DoctorRepository(session)
        self._committed = False

    def __enter__(self) -> "SqlAlchemyUnitOfWork":
        self._committed = False
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self._committed:
            self.rollback()

    def commit(self) -> None:
        self.session.commit()
        self._committed = True

    def rollback(self) -> None:
        self.session.rollback()

    def flush(self) -> None:
        self.session.flush()
