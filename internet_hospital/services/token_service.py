from sqlalchemy.orm import Session
from datetime import datetime, timedelta
from typing import Optional, Tuple
import logging

from ..core.config import settings
from ..core.security import (
    UserRole, create_access_token, generate_refresh_token_value, hash_token
)
from ..models.doctor import Doctor
from ..models.user import User, UserStatus, RefreshToken

logger = logging.getLogger(__name__)

class TokenService:
    def __init__(self, db: Session):
        self.db = db

    def generate_access_token(self, user: User) -> str:
        """Create an access token carrying the user's role and approval state."""
        claims = {
            "sub": str(user.id),
            "email": user.email,
            "role": user.role.value,
        }

        if user.status == UserStatus.APPROVED:
            claims["approved_patient"] = True

        if user.role == UserRole.DOCTOR:
            doctor = self.db.get(Doctor, user.id)
            if doctor is not None and doctor.is_approved:
                claims["approved_doctor"] = True

        return create_access_token(claims)

    def generate_refresh_token(self, user: User) -> str:
        """Store a new refresh token for the user and return its raw value."""
        self.db.query(RefreshToken).filter(
            RefreshToken.user_id == user.id,
            RefreshToken.expires_at < datetime.utcnow()
        ).delete(synchronize_session=False)

        user_tokens = self.db.query(RefreshToken).filter(RefreshToken.user_id == user.id)

        # Too many logged devices: every session has to log in again
        if user_tokens.count() > settings.MAX_LOGGED_DEVICES:
            logger.info(f"User {user.id} exceeded {settings.MAX_LOGGED_DEVICES} sessions, revoking all")
            user_tokens.delete(synchronize_session=False)

        refresh_token = generate_refresh_token_value()
        self.db.add(RefreshToken(
            user_id=user.id,
            token_hash=hash_token(refresh_token),
            expires_at=datetime.utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
            revoked=False
        ))
        self.db.commit()

        return refresh_token

    def refresh_token_validation(self, token: str) -> Optional[Tuple[RefreshToken, str]]:
        """Validate a refresh token and rotate it.

        Returns the stored token row together with the new raw value, or
        None when the token is unknown, expired or revoked. Expired and
        revoked tokens are deleted.
        """
        stored_token = self.db.query(RefreshToken).filter(
            RefreshToken.token_hash == hash_token(token)
        ).first()

        if stored_token is None:
            return None

        if stored_token.expires_at < datetime.utcnow() or stored_token.revoked:
            self.db.delete(stored_token)
            self.db.commit()
            return None

        new_refresh_token = generate_refresh_token_value()
        stored_token.token_hash = hash_token(new_refresh_token)
        self.db.commit()

        return stored_token, new_refresh_token

    def revoke(self, token: str) -> bool:
        """Forget a refresh token; returns whether it existed."""
        deleted = self.db.query(RefreshToken).filter(
            RefreshToken.token_hash == hash_token(token)
        ).delete(synchronize_session=False)
        self.db.commit()
        return deleted > 0

    def revoke_all(self, user_id: int) -> None:
        self.db.query(RefreshToken).filter(
            RefreshToken.user_id == user_id
        ).delete(synchronize_session=False)
        self.db.commit()
