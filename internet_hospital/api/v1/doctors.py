from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from typing import List, Optional

from ...api.deps import get_current_user, get_doctor_service, get_doctor_user, raise_for_result
from ...core.config import settings
from ...models.user import User
from ...schemas.common import OperationResult, PageModel
from ...schemas.doctor import (
    DoctorDetailedModel, DoctorModel, DoctorSearchParameters,
    DoctorUpdate, SpecializationResponse
)
from ...services.doctor_service import DoctorService

router = APIRouter(prefix="/doctors", tags=["Doctors"])

@router.get("", response_model=PageModel[DoctorModel])
async def search_doctors(
    search_by_name: Optional[str] = None,
    search_by_specialization: Optional[int] = None,
    page: int = Query(1, ge=1),
    page_count: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    service: DoctorService = Depends(get_doctor_service)
):
    """Search doctors by name and specialization."""
    parameters = DoctorSearchParameters(
        search_by_name=search_by_name,
        search_by_specialization=search_by_specialization,
        page=page,
        page_count=page_count
    )
    doctors, amount = service.get_all(parameters)
    return PageModel[DoctorModel](entity_amount=amount, entities=doctors)

@router.get("/specializations", response_model=List[SpecializationResponse])
async def get_specializations(
    service: DoctorService = Depends(get_doctor_service)
):
    return [SpecializationResponse.model_validate(s) for s in service.get_specializations()]

@router.get("/me", response_model=DoctorDetailedModel)
async def get_my_profile(
    current_user: User = Depends(get_doctor_user),
    service: DoctorService = Depends(get_doctor_service)
):
    doctor = service.get(current_user.id)
    if doctor is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Doctor profile not found"
        )
    return doctor

@router.put("/me", response_model=OperationResult)
async def update_my_profile(
    doctor_data: DoctorUpdate,
    current_user: User = Depends(get_doctor_user),
    service: DoctorService = Depends(get_doctor_service)
):
    """Update address, description or specialization of the current doctor."""
    return raise_for_result(service.update_doctor_info(current_user.id, doctor_data))

@router.post("/me/diplomas", status_code=status.HTTP_201_CREATED)
async def upload_diploma(
    file: UploadFile = File(...),
    current_user: User = Depends(get_doctor_user),
    service: DoctorService = Depends(get_doctor_service)
):
    """Attach a diploma scan; it is shown publicly once an administrator validates it."""
    diploma_url = await service.add_diploma(current_user.id, file)
    return {"diploma_url": diploma_url}

@router.put("/me/license")
async def upload_license(
    file: UploadFile = File(...),
    current_user: User = Depends(get_doctor_user),
    service: DoctorService = Depends(get_doctor_service)
):
    license_url = await service.update_license(current_user.id, file)
    return {"license_url": license_url}

@router.get("/{doctor_id}", response_model=DoctorDetailedModel)
async def get_doctor(
    doctor_id: int,
    _: User = Depends(get_current_user),
    service: DoctorService = Depends(get_doctor_service)
):
    doctor = service.get(doctor_id)
    if doctor is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Doctor not found"
        )
    return doctor
