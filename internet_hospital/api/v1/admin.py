from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from ...core.database import get_db
from ...core.security import UserRole
from ...api.deps import get_admin_user
from ...models.diploma import Diploma
from ...models.doctor import Doctor
from ...models.passport import Passport
from ...models.user import User, UserStatus
from ...schemas.auth import DocumentValidation, DoctorApproval, UserResponse, UserStatusUpdate
from ...schemas.common import MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Administration"], dependencies=[Depends(get_admin_user)])

@router.get("/users", response_model=List[UserResponse])
async def list_users(
    role: Optional[UserRole] = None,
    user_status: Optional[UserStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """List users, optionally filtered by role and status."""
    query = db.query(User)
    if role is not None:
        query = query.filter(User.role == role)
    if user_status is not None:
        query = query.filter(User.status == user_status)

    users = query.order_by(User.id).offset(skip).limit(limit).all()
    return [UserResponse.model_validate(user) for user in users]

@router.patch("/users/{user_id}/status", response_model=UserResponse)
async def update_user_status(
    user_id: int,
    status_data: UserStatusUpdate,
    db: Session = Depends(get_db)
):
    """Approve, reject or ban a user."""
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    user.status = status_data.status
    db.commit()
    db.refresh(user)

    logger.info(f"User {user_id} status set to {status_data.status.value}")
    return UserResponse.model_validate(user)

@router.patch("/doctors/{doctor_id}/approval", response_model=MessageResponse)
async def update_doctor_approval(
    doctor_id: int,
    approval: DoctorApproval,
    db: Session = Depends(get_db)
):
    """Allow or forbid a doctor to publish appointments."""
    doctor = db.get(Doctor, doctor_id)
    if not doctor:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Doctor not found"
        )

    doctor.is_approved = approval.is_approved
    db.commit()

    return {"message": f"Doctor {'approved' if approval.is_approved else 'rejected'} successfully"}

@router.patch("/passports/{passport_id}", response_model=MessageResponse)
async def validate_passport(
    passport_id: int,
    validation: DocumentValidation,
    db: Session = Depends(get_db)
):
    passport = db.get(Passport, passport_id)
    if not passport:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Passport not found"
        )

    passport.is_valid = validation.is_valid
    db.commit()
    return {"message": "Passport reviewed"}

@router.patch("/diplomas/{diploma_id}", response_model=MessageResponse)
async def validate_diploma(
    diploma_id: int,
    validation: DocumentValidation,
    db: Session = Depends(get_db)
):
    diploma = db.get(Diploma, diploma_id)
    if not diploma:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Diploma not found"
        )

    diploma.is_valid = validation.is_valid
    db.commit()
    return {"message": "Diploma reviewed"}
