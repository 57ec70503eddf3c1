import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from ..models.appointment import Appointment, AppointmentStatus
from ..repositories.appointment_repository import AppointmentRepository
from ..repositories.unit_of_work import SqlAlchemyUnitOfWork
from ..schemas.appointment import (
    AppointmentCreate, AppointmentForPatient, AppointmentHistoryParameters,
    AppointmentModel, AppointmentSearchParameters, AppointmentSubscribe,
    AvailableAppointmentModel, ChangePatientInfoAccess
)
from ..schemas.common import OperationError, OperationResult, PageModel
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Appointment not found"


def _format_start(start_time: datetime) -> str:
    return f"{start_time:%H:%M %d.%m.%Y}"


class AppointmentService:
    """Appointment slots and their open -> reserved -> canceled lifecycle.

    State-changing operations return an ``OperationResult`` instead of
    raising; a transition and the notification it produces are committed
    together, and the "new message" signal is sent only after the commit.
    """

    def __init__(self, uow: SqlAlchemyUnitOfWork, notifications: NotificationService):
        self.uow = uow
        self.notifications = notifications

    # Listings

    def get_my_appointments(self, doctor_id: int) -> List[AppointmentModel]:
        """Open and reserved appointments of the doctor."""
        self.delete_uncommitted_appointments(doctor_id)
        rows = (
            self.uow.appointments.for_doctor_with_patient(doctor_id)
            .filter(Appointment.status.in_([AppointmentStatus.OPEN, AppointmentStatus.RESERVED]))
            .order_by(Appointment.start_time.asc())
            .all()
        )
        return [self._to_doctor_model(*row) for row in rows]

    def get_appointment_history(
        self, parameters: AppointmentHistoryParameters, doctor_id: int
    ) -> PageModel[AppointmentModel]:
        """All appointments of the doctor matching the search parameters, newest first."""
        self.delete_uncommitted_appointments(doctor_id)
        query = self.uow.appointments.for_doctor_with_patient(doctor_id)

        if parameters.search_by_name:
            query = AppointmentRepository.filter_by_patient_name(query, parameters.search_by_name)

        if parameters.from_time is not None:
            query = query.filter(Appointment.start_time >= parameters.from_time)

        if parameters.till_time is not None:
            query = query.filter(Appointment.start_time <= parameters.till_time)

        if parameters.statuses:
            query = query.filter(Appointment.status.in_(parameters.statuses))

        amount = query.count()
        rows = (
            query.order_by(Appointment.start_time.desc(), Appointment.id.desc())
            .offset(parameters.offset)
            .limit(parameters.page_count)
            .all()
        )
        return PageModel[AppointmentModel](
            entity_amount=amount,
            entities=[self._to_doctor_model(*row) for row in rows],
        )

    @staticmethod
    def get_appointment_statuses() -> List[str]:
        return [status.value for status in AppointmentStatus]

    def get_patient_appointments(self, patient_id: int) -> List[AppointmentForPatient]:
        rows = (
            self.uow.appointments.for_patient_with_doctor(patient_id)
            .filter(Appointment.status == AppointmentStatus.RESERVED)
            .order_by(Appointment.start_time.asc())
            .all()
        )
        return [
            AppointmentForPatient(
                id=appointment.id,
                user_id=appointment.user_id,
                doctor_id=appointment.doctor_id,
                doctor_first_name=first_name,
                doctor_second_name=second_name,
                doctor_specialization=specialization,
                address=appointment.address,
                start_time=appointment.start_time,
                end_time=appointment.end_time,
                status=appointment.status,
                is_allow_patient_info=appointment.is_allow_patient_info,
            )
            for appointment, first_name, second_name, specialization in rows
        ]

    def get_available_appointments(
        self, parameters: AppointmentSearchParameters
    ) -> PageModel[AvailableAppointmentModel]:
        """Open slots of one doctor that a patient can reserve."""
        query = self.uow.appointments.open_for_doctor(parameters.doctor_id).filter(
            Appointment.start_time >= parameters.from_time
        )
        if parameters.till_time is not None:
            query = query.filter(Appointment.start_time <= parameters.till_time)

        amount = query.count()
        appointments = (
            query.order_by(Appointment.start_time.asc(), Appointment.id.asc())
            .offset(parameters.offset)
            .limit(parameters.page_count)
            .all()
        )
        return PageModel[AvailableAppointmentModel](
            entity_amount=amount,
            entities=[AvailableAppointmentModel.model_validate(a) for a in appointments],
        )

    def get_reserving_patient(
        self, appointment_id: int, doctor_id: int
    ) -> Tuple[OperationResult, Optional[int]]:
        """Patient id behind a reservation, if the patient shared their personal info."""
        appointment = self.uow.appointments.get(appointment_id)
        if appointment is None:
            return OperationResult.fail(OperationError.NOT_FOUND, NOT_FOUND_MESSAGE), None
        if appointment.doctor_id != doctor_id:
            return OperationResult.fail(OperationError.NOT_OWNER, "This is not your appointment"), None
        if appointment.user_id is None:
            return OperationResult.fail(OperationError.WRONG_STATUS, "Appointment is not reserved"), None
        if not appointment.is_allow_patient_info:
            return OperationResult.fail(
                OperationError.NOT_OWNER, "Patient has not shared personal information"
            ), None
        return OperationResult.ok("Patient info is available", entity_id=appointment.user_id), appointment.user_id

    # Doctor operations

    def add_appointment(self, creation_model: AppointmentCreate, doctor_id: int) -> OperationResult:
        if creation_model.start_time < datetime.now():
            return OperationResult.fail(OperationError.INVALID, "Appointment cannot start in the past")

        try:
            with self.uow:
                if self.uow.appointments.has_overlap(
                    doctor_id, creation_model.start_time, creation_model.end_time
                ):
                    return OperationResult.fail(
                        OperationError.CONFLICT, "Appointment overlaps with another one of yours"
                    )

                address = creation_model.address
                if address is None:
                    doctor = self.uow.doctors.get(doctor_id)
                    address = doctor.address if doctor is not None else None

                appointment = self.uow.appointments.add(Appointment(
                    doctor_id=doctor_id,
                    start_time=creation_model.start_time,
                    end_time=creation_model.end_time,
                    address=address,
                    status=AppointmentStatus.OPEN,
                    is_allow_patient_info=False,
                ))
                self.uow.flush()
                appointment_id = appointment.id
                self.uow.commit()
        except SQLAlchemyError:
            logger.exception(f"Failed to create appointment for doctor {doctor_id}")
            return OperationResult.fail(OperationError.PERSISTENCE, "Error with appointment creation")

        logger.info(f"Doctor {doctor_id} opened appointment {appointment_id}")
        return OperationResult.ok("Appointment was created", entity_id=appointment_id)

    def delete_appointment(self, appointment_id: int, doctor_id: int) -> OperationResult:
        """Delete a doctor's appointment if it is not reserved."""
        try:
            with self.uow:
                appointment = self.uow.appointments.get(appointment_id)
                if appointment is None:
                    return OperationResult.fail(OperationError.NOT_FOUND, NOT_FOUND_MESSAGE)

                if appointment.doctor_id != doctor_id:
                    return OperationResult.fail(
                        OperationError.NOT_OWNER, "You can delete only your appointments"
                    )

                if appointment.status == AppointmentStatus.RESERVED:
                    return OperationResult.fail(
                        OperationError.WRONG_STATUS, "This appointment is reserved. You can only cancel it"
                    )

                if not appointment.status.is_deletable:
                    return OperationResult.fail(
                        OperationError.WRONG_STATUS, "Canceled appointments are kept in the history"
                    )

                self.uow.appointments.remove(appointment)
                self.uow.commit()
        except SQLAlchemyError:
            logger.exception(f"Failed to delete appointment {appointment_id}")
            return OperationResult.fail(OperationError.PERSISTENCE, "Error with appointment deletion")

        return OperationResult.ok("Appointment was deleted")

    def cancel_appointment(self, appointment_id: int, doctor_id: int) -> OperationResult:
        """Cancel an appointment that a patient has already reserved."""
        try:
            with self.uow:
                appointment = self.uow.appointments.get(appointment_id)
                if appointment is None:
                    return OperationResult.fail(OperationError.NOT_FOUND, NOT_FOUND_MESSAGE)

                if appointment.doctor_id != doctor_id:
                    return OperationResult.fail(
                        OperationError.NOT_OWNER, "You can cancel only your appointments"
                    )

                if not appointment.status.can_become(AppointmentStatus.CANCELED):
                    return OperationResult.fail(
                        OperationError.WRONG_STATUS, "You can cancel only reserved appointments"
                    )

                patient_id = appointment.user_id
                start_time = appointment.start_time
                doctor = self.uow.users.get(doctor_id)

                if not self.uow.appointments.cancel(appointment_id):
                    return OperationResult.fail(
                        OperationError.WRONG_STATUS, "You can cancel only reserved appointments"
                    )

                self.notifications.add_notification(
                    patient_id,
                    f"Your appointment with {doctor.first_name} {doctor.second_name} "
                    f"at {_format_start(start_time)} was canceled."
                )
                self.uow.commit()
        except SQLAlchemyError:
            logger.exception(f"Failed to cancel appointment {appointment_id}")
            return OperationResult.fail(OperationError.PERSISTENCE, "Error with appointment cancelation")

        self.notifications.notify(patient_id)
        return OperationResult.ok("Appointment was canceled")

    # Patient operations

    def subscribe_for_appointment(
        self, appointment_model: AppointmentSubscribe, patient_id: int
    ) -> OperationResult:
        """Reserve an open appointment for the patient."""
        try:
            with self.uow:
                appointment = self.uow.appointments.get(appointment_model.id)
                if appointment is None:
                    return OperationResult.fail(OperationError.NOT_FOUND, NOT_FOUND_MESSAGE)

                if not appointment.status.can_become(AppointmentStatus.RESERVED):
                    return OperationResult.fail(
                        OperationError.WRONG_STATUS, "This appointment is not available for reservation"
                    )

                doctor_id = appointment.doctor_id
                start_time = appointment.start_time
                patient = self.uow.users.get(patient_id)

                # Another patient may have committed first
                if not self.uow.appointments.reserve(
                    appointment_model.id, patient_id, appointment_model.is_allow_patient_info
                ):
                    return OperationResult.fail(
                        OperationError.WRONG_STATUS, "This appointment is not available for reservation"
                    )

                self.notifications.add_notification(
                    doctor_id,
                    f"{patient.first_name} {patient.second_name} "
                    f"has subscribed for your appointment at {_format_start(start_time)}"
                )
                self.uow.commit()
        except SQLAlchemyError:
            logger.exception(f"Failed to subscribe patient {patient_id} for appointment {appointment_model.id}")
            return OperationResult.fail(OperationError.PERSISTENCE, "Error with appointment subscription")

        self.notifications.notify(doctor_id)
        return OperationResult.ok("You have subscribed for the appointment")

    def unsubscribe_for_appointment(self, appointment_id: int, patient_id: int) -> OperationResult:
        """Release a reservation, returning the slot to open."""
        try:
            with self.uow:
                appointment = self.uow.appointments.get(appointment_id)
                if appointment is None:
                    return OperationResult.fail(OperationError.NOT_FOUND, NOT_FOUND_MESSAGE)

                if not appointment.status.can_become(AppointmentStatus.OPEN):
                    return OperationResult.fail(
                        OperationError.WRONG_STATUS, "You can unsubscribe only from reserved appointments"
                    )

                if appointment.user_id != patient_id:
                    return OperationResult.fail(
                        OperationError.NOT_OWNER, "You can unsubscribe only from your appointments"
                    )

                doctor_id = appointment.doctor_id
                start_time = appointment.start_time
                patient = self.uow.users.get(patient_id)

                if not self.uow.appointments.release(appointment_id, patient_id):
                    return OperationResult.fail(
                        OperationError.WRONG_STATUS, "You can unsubscribe only from reserved appointments"
                    )

                self.notifications.add_notification(
                    doctor_id,
                    f"{patient.first_name} {patient.second_name} "
                    f"has unsubscribed from your appointment at {_format_start(start_time)}"
                )
                self.uow.commit()
        except SQLAlchemyError:
            logger.exception(f"Failed to unsubscribe patient {patient_id} from appointment {appointment_id}")
            return OperationResult.fail(OperationError.PERSISTENCE, "Error with appointment unsubscription")

        self.notifications.notify(doctor_id)
        return OperationResult.ok("You have unsubscribed from the appointment")

    def change_access_for_personal_info(
        self, model: ChangePatientInfoAccess, patient_id: int
    ) -> OperationResult:
        try:
            with self.uow:
                appointment = self.uow.appointments.get(model.appointment_id)
                if appointment is None:
                    return OperationResult.fail(OperationError.NOT_FOUND, NOT_FOUND_MESSAGE)

                if appointment.user_id != patient_id:
                    return OperationResult.fail(
                        OperationError.NOT_OWNER, "You can change access only for your appointments"
                    )

                appointment.is_allow_patient_info = model.is_allow_patient_info
                self.uow.commit()
        except SQLAlchemyError:
            logger.exception(f"Failed to change info access for appointment {model.appointment_id}")
            return OperationResult.fail(OperationError.PERSISTENCE, "Error with changing access")

        return OperationResult.ok("Access to personal info was changed")

    # Housekeeping

    def delete_uncommitted_appointments(self, doctor_id: int) -> int:
        """Drop the doctor's open slots whose start time has passed."""
        try:
            with self.uow:
                removed = self.uow.appointments.delete_expired_open(doctor_id, datetime.now())
                self.uow.commit()
        except SQLAlchemyError:
            logger.exception(f"Failed to remove expired appointments of doctor {doctor_id}")
            return 0

        if removed:
            logger.info(f"Removed {removed} expired open appointments of doctor {doctor_id}")
        return removed

    @staticmethod
    def _to_doctor_model(
        appointment: Appointment, first_name: Optional[str], second_name: Optional[str]
    ) -> AppointmentModel:
        return AppointmentModel(
            id=appointment.id,
            user_id=appointment.user_id,
            user_first_name=first_name,
            user_second_name=second_name,
            address=appointment.address,
            start_time=appointment.start_time,
            end_time=appointment.end_time,
            status=appointment.status,
            is_allow_patient_info=appointment.is_allow_patient_info,
        )
