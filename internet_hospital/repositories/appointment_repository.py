from datetime import datetime

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Query, aliased

from ..models.appointment import Appointment, AppointmentStatus
from ..models.doctor import Doctor
from ..models.specialization import Specialization
from ..models.user import User
from .base import BaseRepository


class AppointmentRepository(BaseRepository[Appointment]):
    model = Appointment

    def for_doctor_with_patient(self, doctor_id: int) -> Query:
        """Doctor's appointments joined with the (optional) reserving patient."""
        return (
            self.db.query(Appointment, User.first_name, User.second_name)
            .outerjoin(User, User.id == Appointment.user_id)
            .filter(Appointment.doctor_id == doctor_id)
        )

    def for_patient_with_doctor(self, patient_id: int) -> Query:
        doctor_user = aliased(User)
        return (
            self.db.query(
                Appointment,
                doctor_user.first_name,
                doctor_user.second_name,
                Specialization.name,
            )
            .join(Doctor, Doctor.user_id == Appointment.doctor_id)
            .join(doctor_user, doctor_user.id == Doctor.user_id)
            .outerjoin(Specialization, Specialization.id == Doctor.specialization_id)
            .filter(Appointment.user_id == patient_id)
        )

    def open_for_doctor(self, doctor_id: int) -> Query:
        return self.db.query(Appointment).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.status == AppointmentStatus.OPEN,
        )

    @staticmethod
    def filter_by_patient_name(query: Query, search: str) -> Query:
        pattern = f"%{search.lower()}%"
        return query.filter(
            or_(
                func.lower(User.first_name).like(pattern),
                func.lower(User.second_name).like(pattern),
            )
        )

    def has_overlap(self, doctor_id: int, start_time: datetime, end_time: datetime) -> bool:
        return self.db.query(
            self.db.query(Appointment)
            .filter(
                Appointment.doctor_id == doctor_id,
                Appointment.status != AppointmentStatus.CANCELED,
                Appointment.start_time < end_time,
                Appointment.end_time > start_time,
            )
            .exists()
        ).scalar()

    def delete_expired_open(self, doctor_id: int, now: datetime) -> int:
        """Remove never-reserved slots that already started."""
        return (
            self.db.query(Appointment)
            .filter(
                Appointment.doctor_id == doctor_id,
                Appointment.status == AppointmentStatus.OPEN,
                Appointment.start_time < now,
            )
            .delete(synchronize_session=False)
        )

    def _compare_and_set(self, appointment_id: int, expected: AppointmentStatus, **values) -> bool:
        result = self.db.execute(
            update(Appointment)
            .where(Appointment.id == appointment_id, Appointment.status == expected)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def reserve(self, appointment_id: int, patient_id: int, allow_patient_info: bool) -> bool:
        return self._compare_and_set(
            appointment_id,
            AppointmentStatus.OPEN,
            user_id=patient_id,
            is_allow_patient_info=allow_patient_info,
            status=AppointmentStatus.OPEN.reserve(),
        )

    def release(self, appointment_id: int, patient_id: int) -> bool:
        result = self.db.execute(
            update(Appointment)
            .where(
                Appointment.id == appointment_id,
                Appointment.status == AppointmentStatus.RESERVED,
                Appointment.user_id == patient_id,
            )
            .values(
                user_id=None,
                is_allow_patient_info=False,
                status=AppointmentStatus.RESERVED.release(),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def cancel(self, appointment_id: int) -> bool:
        return self._compare_and_set(
            appointment_id,
            AppointmentStatus.RESERVED,
            status=AppointmentStatus.RESERVED.cancel(),
        )
