from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import HTTPException, status
from fastapi.security import HTTPBearer
from pydantic import BaseModel
import hashlib
import secrets
from enum import Enum

from .config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer scheme for access tokens
security = HTTPBearer()

ACCESS_TOKEN_TYPE = "access"

class UserRole(str, Enum):
    ADMIN = "admin"
    DOCTOR = "doctor"
    PATIENT = "patient"

class TokenPayload(BaseModel):
    """Claims carried by an access token."""
    sub: Optional[int] = None
    email: Optional[str] = None
    role: Optional[UserRole] = None
    exp: Optional[int] = None
    iss: Optional[str] = None
    token_type: Optional[str] = None
    approved_patient: bool = False
    approved_doctor: bool = False

def verify_password(plain_password: str, password_hash: str) -> bool:
    return pwd_context.verify(plain_password, password_hash)

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def generate_refresh_token_value() -> str:
    """Opaque refresh token handed to the client once."""
    return secrets.token_urlsafe(32)

def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()

def create_access_token(claims: Dict[str, Any], lifetime: Optional[timedelta] = None) -> str:
    """Sign an access token for the given claims."""
    lifetime = lifetime or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        **claims,
        "exp": datetime.utcnow() + lifetime,
        "iss": settings.JWT_ISSUER,
        "token_type": ACCESS_TOKEN_TYPE
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def verify_token(token: str) -> Optional[TokenPayload]:
    """Decode an access token; None when the signature, issuer or expiry is wrong."""
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            issuer=settings.JWT_ISSUER
        )
    except JWTError:
        return None
    return TokenPayload(**payload)

class AuthenticationError(HTTPException):
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

class AuthorizationError(HTTPException):
    def __init__(self, detail: str = "Not enough permissions"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )
