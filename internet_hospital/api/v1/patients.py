from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import ValidationError
from typing import List, Optional

from ...api.deps import get_patient_service, get_patient_user
from ...models.user import User
from ...schemas.common import MessageResponse
from ...schemas.patient import AvatarResponse, PatientModel, PatientProfile
from ...services.patient_service import PatientService

router = APIRouter(prefix="/patients", tags=["Patients"])

def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value

@router.put("/avatar", response_model=AvatarResponse)
async def update_avatar(
    file: UploadFile = File(...),
    current_user: User = Depends(get_patient_user),
    service: PatientService = Depends(get_patient_service)
):
    avatar_url = await service.update_avatar(file, current_user)
    return AvatarResponse(avatar_url=avatar_url)

@router.get("/avatar", response_model=AvatarResponse)
async def get_avatar(
    current_user: User = Depends(get_patient_user),
    service: PatientService = Depends(get_patient_service)
):
    return AvatarResponse(avatar_url=service.get_avatar(current_user.id))

@router.put("/profile", response_model=MessageResponse)
async def update_profile(
    first_name: str = Form(...),
    second_name: str = Form(...),
    third_name: Optional[str] = Form(None),
    phone_number: Optional[str] = Form(None),
    birth_date: Optional[str] = Form(None),
    passports: Optional[List[UploadFile]] = File(None),
    current_user: User = Depends(get_patient_user),
    service: PatientService = Depends(get_patient_service)
):
    """Update personal info and upload passport scans for review."""
    try:
        patient_data = PatientModel(
            first_name=first_name,
            second_name=second_name,
            third_name=_blank_to_none(third_name),
            phone_number=_blank_to_none(phone_number),
            birth_date=_blank_to_none(birth_date)
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=[error["msg"] for error in exc.errors()]
        )

    if not await service.update_patient_info(patient_data, current_user.id, passports):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Profile could not be updated"
        )
    return {"message": "Profile updated successfully"}

@router.get("/profile", response_model=PatientProfile)
async def get_profile(
    current_user: User = Depends(get_patient_user),
    service: PatientService = Depends(get_patient_service)
):
    return service.get_patient_profile(current_user.id)
