import os

# Must be set before the application settings are imported
os.environ["TESTING"] = "1"
os.environ.setdefault("TEST_DATABASE_URL", "sqlite:///./test.db")

from datetime import datetime, timedelta

import pytest
import redis
from fastapi.testclient import TestClient

from internet_hospital.core.database import Base, SessionLocal, engine, get_redis, init_db  # noqa: E402
from internet_hospital.core.security import UserRole, get_password_hash  # noqa: E402
from internet_hospital.main import app  # noqa: E402
from internet_hospital.models.appointment import Appointment, AppointmentStatus  # noqa: E402
from internet_hospital.models.doctor import Doctor  # noqa: E402
from internet_hospital.models.specialization import Specialization  # noqa: E402
from internet_hospital.models.user import User, UserStatus  # noqa: E402
from internet_hospital.repositories.unit_of_work import SqlAlchemyUnitOfWork  # noqa: E402
from internet_hospital.services.appointment_service import AppointmentService  # noqa: E402
from internet_hospital.services.notification_service import NotificationService  # noqa: E402
from internet_hospital.services.token_service import TokenService  # noqa: E402

PASSWORD = "TestPassword123"
PASSWORD_HASH = get_password_hash(PASSWORD)


class FakeRedis:
    """In-memory stand-in for the few redis commands the app uses."""

    def __init__(self):
        self.values = {}
        self.published = []
        self.broken = False

    def _check(self):
        if self.broken:
            raise redis.ConnectionError("redis is down")

    def get(self, key):
        self._check()
        return self.values.get(key)

    def setex(self, key, seconds, value):
        self._check()
        self.values[key] = str(value)

    def incr(self, key):
        self._check()
        self.values[key] = str(int(self.values.get(key, 0)) + 1)
        return int(self.values[key])

    def publish(self, channel, message):
        self._check()
        self.published.append((channel, message))
        return 1


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture(scope="function")
def test_db():
    init_db()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session(test_db):
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(test_db, fake_redis):
    app.dependency_overrides[get_redis] = lambda: fake_redis
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def create_user(db_session):
    counter = {"value": 0}

    def _create_user(
        role=UserRole.PATIENT,
        status=UserStatus.APPROVED,
        first_name="Ivan",
        second_name="Petrov",
        doctor_approved=True,
        address="Main street 1"
    ):
        counter["value"] += 1
        user = User(
            email=f"{role.value}{counter['value']}@example.com",
            password_hash=PASSWORD_HASH,
            role=role,
            status=status,
            first_name=first_name,
            second_name=second_name,
            is_active=True
        )
        db_session.add(user)
        db_session.flush()

        if role == UserRole.DOCTOR:
            specialization = db_session.query(Specialization).order_by(Specialization.id).first()
            db_session.add(Doctor(
                user_id=user.id,
                specialization_id=specialization.id,
                address=address,
                is_approved=doctor_approved
            ))

        db_session.commit()
        return user

    return _create_user


@pytest.fixture
def doctor(create_user):
    return create_user(role=UserRole.DOCTOR, first_name="Anna", second_name="Smirnova")


@pytest.fixture
def patient(create_user):
    return create_user(role=UserRole.PATIENT, first_name="Ivan", second_name="Petrov")


@pytest.fixture
def admin(create_user):
    return create_user(role=UserRole.ADMIN, first_name="Admin", second_name="Root")


@pytest.fixture
def auth_headers(db_session):
    def _auth_headers(user):
        token = TokenService(db_session).generate_access_token(user)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture
def make_appointment(db_session):
    def _make_appointment(
        doctor,
        start_time=None,
        duration=timedelta(minutes=30),
        status=AppointmentStatus.OPEN,
        patient=None,
        allow_info=False
    ):
        start_time = start_time or datetime.now().replace(second=0, microsecond=0) + timedelta(days=1)
        appointment = Appointment(
            doctor_id=doctor.id,
            user_id=patient.id if patient is not None else None,
            start_time=start_time,
            end_time=start_time + duration,
            address="Main street 1",
            status=status,
            is_allow_patient_info=allow_info
        )
        db_session.add(appointment)
        db_session.commit()
        return appointment

    return _make_appointment


@pytest.fixture
def appointment_service(db_session, fake_redis):
    uow = SqlAlchemyUnitOfWork(db_session)
    return AppointmentService(uow, NotificationService(uow, fake_redis))
