from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import List, Optional

from ...api.deps import (
    get_appointment_service, get_approved_doctor, get_approved_patient,
    get_current_user, get_doctor_user, get_patient_service, get_patient_user,
    raise_for_result
)
from ...core.config import settings
from ...models.appointment import AppointmentStatus
from ...models.user import User
from ...schemas.appointment import (
    AppointmentCreate, AppointmentForPatient, AppointmentHistoryParameters,
    AppointmentModel, AppointmentSearchParameters, AppointmentSubscribe,
    AvailableAppointmentModel, ChangePatientInfoAccess
)
from ...schemas.common import OperationResult, PageModel
from ...schemas.patient import PatientProfile
from ...services.appointment_service import AppointmentService
from ...services.patient_service import PatientService

router = APIRouter(prefix="/appointments", tags=["Appointments"])

def history_parameters(
    search_by_name: Optional[str] = None,
    from_time: Optional[datetime] = Query(None, alias="from"),
    till_time: Optional[datetime] = Query(None, alias="till"),
    statuses: List[AppointmentStatus] = Query([]),
    page: int = Query(1, ge=1),
    page_count: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE)
) -> AppointmentHistoryParameters:
    return AppointmentHistoryParameters(
        search_by_name=search_by_name,
        from_time=from_time,
        till_time=till_time,
        statuses=statuses,
        page=page,
        page_count=page_count
    )

def search_parameters(
    doctor_id: int,
    from_time: datetime = Query(..., alias="from"),
    till_time: Optional[datetime] = Query(None, alias="till"),
    page: int = Query(1, ge=1),
    page_count: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE)
) -> AppointmentSearchParameters:
    return AppointmentSearchParameters(
        doctor_id=doctor_id,
        from_time=from_time,
        till_time=till_time,
        page=page,
        page_count=page_count
    )

# Doctor endpoints
@router.get("/doctor", response_model=List[AppointmentModel])
async def get_my_appointments(
    current_user: User = Depends(get_doctor_user),
    service: AppointmentService = Depends(get_appointment_service)
):
    """Open and reserved appointments of the current doctor."""
    return service.get_my_appointments(current_user.id)

@router.get("/doctor/history", response_model=PageModel[AppointmentModel])
async def get_appointment_history(
    parameters: AppointmentHistoryParameters = Depends(history_parameters),
    current_user: User = Depends(get_doctor_user),
    service: AppointmentService = Depends(get_appointment_service)
):
    return service.get_appointment_history(parameters, current_user.id)

@router.get("/statuses", response_model=List[str])
async def get_appointment_statuses():
    return AppointmentService.get_appointment_statuses()

@router.post("", response_model=OperationResult, status_code=status.HTTP_201_CREATED)
async def add_appointment(
    appointment_data: AppointmentCreate,
    current_user: User = Depends(get_approved_doctor),
    service: AppointmentService = Depends(get_appointment_service)
):
    """Publish a new open appointment slot."""
    return raise_for_result(service.add_appointment(appointment_data, current_user.id))

@router.delete("/{appointment_id}", response_model=OperationResult)
async def delete_appointment(
    appointment_id: int,
    current_user: User = Depends(get_doctor_user),
    service: AppointmentService = Depends(get_appointment_service)
):
    return raise_for_result(service.delete_appointment(appointment_id, current_user.id))

@router.post("/{appointment_id}/cancel", response_model=OperationResult)
async def cancel_appointment(
    appointment_id: int,
    current_user: User = Depends(get_doctor_user),
    service: AppointmentService = Depends(get_appointment_service)
):
    """Cancel a reserved appointment and notify the patient."""
    return raise_for_result(service.cancel_appointment(appointment_id, current_user.id))

@router.get("/{appointment_id}/patient", response_model=PatientProfile)
async def get_appointment_patient(
    appointment_id: int,
    current_user: User = Depends(get_doctor_user),
    service: AppointmentService = Depends(get_appointment_service),
    patient_service: PatientService = Depends(get_patient_service)
):
    """Personal info of the patient who reserved the appointment, if shared."""
    result, patient_id = service.get_reserving_patient(appointment_id, current_user.id)
    raise_for_result(result)

    profile = patient_service.get_patient_profile(patient_id)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Patient not found"
        )
    return profile

# Patient endpoints
@router.get("/available", response_model=PageModel[AvailableAppointmentModel])
async def get_available_appointments(
    parameters: AppointmentSearchParameters = Depends(search_parameters),
    _: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service)
):
    """Open slots of a doctor that can be reserved."""
    return service.get_available_appointments(parameters)

@router.get("/patient", response_model=List[AppointmentForPatient])
async def get_patient_appointments(
    current_user: User = Depends(get_patient_user),
    service: AppointmentService = Depends(get_appointment_service)
):
    return service.get_patient_appointments(current_user.id)

@router.post("/subscribe", response_model=OperationResult)
async def subscribe_for_appointment(
    subscription: AppointmentSubscribe,
    current_user: User = Depends(get_approved_patient),
    service: AppointmentService = Depends(get_appointment_service)
):
    """Reserve an open appointment."""
    return raise_for_result(service.subscribe_for_appointment(subscription, current_user.id))

@router.post("/{appointment_id}/unsubscribe", response_model=OperationResult)
async def unsubscribe_for_appointment(
    appointment_id: int,
    current_user: User = Depends(get_patient_user),
    service: AppointmentService = Depends(get_appointment_service)
):
    return raise_for_result(service.unsubscribe_for_appointment(appointment_id, current_user.id))

@router.put("/access", response_model=OperationResult)
async def change_access_for_personal_info(
    access: ChangePatientInfoAccess,
    current_user: User = Depends(get_patient_user),
    service: AppointmentService = Depends(get_appointment_service)
):
    """Allow or forbid the doctor to see the patient's personal info."""
    return raise_for_result(service.change_access_for_personal_info(access, current_user.id))
