from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from datetime import datetime, timedelta
import logging

from ..core.config import settings
from ..core.security import verify_password, get_password_hash, UserRole
from ..models.doctor import Doctor
from ..models.specialization import Specialization
from ..models.user import User, UserStatus
from ..schemas.auth import UserLogin, UserRegister, TokenResponse, UserResponse, ChangePassword
from .token_service import TokenService

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"

def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)

class AuthService:
    """Registration, login and session handling for patients, doctors and admins."""

    def __init__(self, db: Session):
        self.db = db
        self.tokens = TokenService(db)

    def register_user(self, user_data: UserRegister) -> User:
        if self.db.query(User.id).filter(User.email == user_data.email).first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered"
            )

        is_doctor = user_data.role == UserRole.DOCTOR
        if is_doctor and self.db.get(Specialization, user_data.specialization_id) is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Unknown specialization"
            )

        user = User(
            email=user_data.email,
            password_hash=get_password_hash(user_data.password),
            role=user_data.role,
            status=UserStatus.NEW,
            first_name=user_data.first_name,
            second_name=user_data.second_name,
            third_name=user_data.third_name,
            birth_date=user_data.birth_date,
            is_active=True
        )
        self.db.add(user)
        self.db.flush()

        if is_doctor:
            # Undecided until an administrator reviews the documents
            self.db.add(Doctor(
                user_id=user.id,
                specialization_id=user_data.specialization_id,
                is_approved=None
            ))

        self.db.commit()
        self.db.refresh(user)

        logger.info(f"Registered {user.role.value} {user.id}")
        return user

    def authenticate_user(self, login_data: UserLogin) -> TokenResponse:
        user = self.db.query(User).filter(User.email == login_data.email).first()
        if user is None:
            raise _unauthorized(INVALID_CREDENTIALS)

        if user.locked_until and user.locked_until > datetime.utcnow():
            raise HTTPException(
                status_code=status.HTTP_423_LOCKED,
                detail="Account is temporarily locked"
            )

        if not verify_password(login_data.password, user.password_hash):
            self._handle_failed_login(user)
            raise _unauthorized(INVALID_CREDENTIALS)

        if not user.is_active:
            raise _unauthorized("Account is deactivated")

        if user.status == UserStatus.BANNED:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Account is banned"
            )

        user.failed_login_attempts = 0
        user.locked_until = None
        user.last_login = datetime.utcnow()

        return self._issue_tokens(user)

    def refresh_access_token(self, refresh_token: str) -> TokenResponse:
        """Exchange a refresh token for a new token pair; the old one stops working."""
        validated = self.tokens.refresh_token_validation(refresh_token)
        if validated is None:
            raise _unauthorized("Invalid or expired refresh token")

        stored_token, new_refresh_token = validated
        user = self.db.get(User, stored_token.user_id)
        if user is None or not user.is_active or user.status == UserStatus.BANNED:
            raise _unauthorized("User not found or inactive")

        return self._token_response(user, self.tokens.generate_access_token(user), new_refresh_token)

    def logout_user(self, refresh_token: str) -> bool:
        return self.tokens.revoke(refresh_token)

    def change_password(self, user: User, password_data: ChangePassword) -> None:
        if not verify_password(password_data.current_password, user.password_hash):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Current password is incorrect"
            )

        user.password_hash = get_password_hash(password_data.new_password)
        self.db.commit()

        # Every device has to log in with the new password
        self.tokens.revoke_all(user.id)

    def _issue_tokens(self, user: User) -> TokenResponse:
        access_token = self.tokens.generate_access_token(user)
        # Commits the login bookkeeping as well
        refresh_token = self.tokens.generate_refresh_token(user)
        self.db.refresh(user)
        return self._token_response(user, access_token, refresh_token)

    @staticmethod
    def _token_response(user: User, access_token: str, refresh_token: str) -> TokenResponse:
        return TokenResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            user=UserResponse.model_validate(user)
        )

    def _handle_failed_login(self, user: User) -> None:
        user.failed_login_attempts = (user.failed_login_attempts or 0) + 1

        if user.failed_login_attempts >= settings.MAX_FAILED_LOGIN_ATTEMPTS:
            user.locked_until = datetime.utcnow() + timedelta(minutes=settings.LOCKOUT_MINUTES)
            logger.warning(f"User {user.id} locked after {user.failed_login_attempts} failed logins")

        self.db.commit()
