from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Callable
import logging

import redis

from ..core.config import settings
from ..core.database import get_db, get_redis
from ..core.security import (
    ACCESS_TOKEN_TYPE, AuthenticationError, AuthorizationError,
    TokenPayload, UserRole, security, verify_token
)
from ..models.doctor import Doctor
from ..models.user import User, UserStatus
from ..repositories.unit_of_work import SqlAlchemyUnitOfWork
from ..schemas.common import OperationError, OperationResult
from ..services.appointment_service import AppointmentService
from ..services.auth_service import AuthService
from ..services.doctor_service import DoctorService
from ..services.file_service import FileService
from ..services.notification_service import NotificationService
from ..services.patient_service import PatientService

logger = logging.getLogger(__name__)

# Authentication
async def get_current_user_token(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> TokenPayload:
    """Decoded claims of the bearer access token."""
    payload = verify_token(credentials.credentials)
    if payload is None:
        raise AuthenticationError("Invalid or expired token")
    if payload.token_type != ACCESS_TOKEN_TYPE:
        raise AuthenticationError("Invalid token type")
    return payload

async def get_current_user(
    token_payload: TokenPayload = Depends(get_current_user_token),
    db: Session = Depends(get_db)
) -> User:
    user = db.get(User, token_payload.sub) if token_payload.sub else None
    if user is None or not user.is_active:
        raise AuthenticationError("User not found or inactive")
    if user.status == UserStatus.BANNED:
        raise AuthorizationError("User account is banned")
    return user

def require_role(*roles: UserRole) -> Callable:
    """Dependency factory that admits only the given roles."""
    allowed = frozenset(roles)

    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise AuthorizationError(
                f"Access denied. Required roles: {sorted(role.value for role in allowed)}"
            )
        return current_user

    return role_checker

get_admin_user = require_role(UserRole.ADMIN)
get_doctor_user = require_role(UserRole.DOCTOR)
get_patient_user = require_role(UserRole.PATIENT)

async def get_approved_doctor(
    current_user: User = Depends(get_doctor_user),
    db: Session = Depends(get_db)
) -> User:
    """Doctors publish appointments only after an administrator approved them."""
    doctor = db.get(Doctor, current_user.id)
    if doctor is None or not doctor.is_approved:
        raise AuthorizationError("Doctor account is not approved yet")
    return current_user

async def get_approved_patient(current_user: User = Depends(get_patient_user)) -> User:
    if current_user.status != UserStatus.APPROVED:
        raise AuthorizationError("Patient account is not approved yet")
    return current_user

# Services
def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    return AuthService(db)

def get_file_service() -> FileService:
    return FileService()

def get_notification_service(
    db: Session = Depends(get_db),
    redis_client: redis.Redis = Depends(get_redis)
) -> NotificationService:
    return NotificationService(SqlAlchemyUnitOfWork(db), redis_client)

def get_appointment_service(
    notifications: NotificationService = Depends(get_notification_service)
) -> AppointmentService:
    return AppointmentService(notifications.uow, notifications)

def get_patient_service(
    db: Session = Depends(get_db),
    files: FileService = Depends(get_file_service)
) -> PatientService:
    return PatientService(db, files)

def get_doctor_service(
    db: Session = Depends(get_db),
    files: FileService = Depends(get_file_service)
) -> DoctorService:
    return DoctorService(db, files)

RATE_LIMIT_KEY = "rate_limit:{client}"

async def rate_limit_check(
    request: Request,
    redis_client: redis.Redis = Depends(get_redis)
) -> None:
    """Fixed-window limit on register/login attempts per client address."""
    key = RATE_LIMIT_KEY.format(client=request.client.host if request.client else "unknown")

    try:
        attempts = redis_client.get(key)
        if attempts is None:
            redis_client.setex(key, settings.RATE_LIMIT_WINDOW_SECONDS, 1)
        elif int(attempts) >= settings.RATE_LIMIT_REQUESTS:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests. Please try again later."
            )
        else:
            redis_client.incr(key)
    except redis.RedisError as exc:
        logger.warning(f"Rate limiter unavailable, letting request through: {exc}")

# Operation results
ERROR_STATUS_CODES = {
    OperationError.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    OperationError.NOT_OWNER: status.HTTP_403_FORBIDDEN,
    OperationError.WRONG_STATUS: status.HTTP_409_CONFLICT,
    OperationError.CONFLICT: status.HTTP_409_CONFLICT,
    OperationError.INVALID: status.HTTP_400_BAD_REQUEST,
    OperationError.PERSISTENCE: status.HTTP_503_SERVICE_UNAVAILABLE,
}

def raise_for_result(result: OperationResult) -> OperationResult:
    """Turn a failed operation into the matching HTTP error."""
    if not result.success:
        raise HTTPException(
            status_code=ERROR_STATUS_CODES.get(result.error, status.HTTP_400_BAD_REQUEST),
            detail=result.message
        )
    return result
