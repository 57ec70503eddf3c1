from sqlalchemy import Column, Integer, String, DateTime, Date, Boolean, ForeignKey, Enum as SQLEnum
from sqlalchemy.sql import func
import enum
from ..core.database import Base
from ..core.security import UserRole

class UserStatus(str, enum.Enum):
    BANNED = "banned"
    NEW = "new"
    APPROVED = "approved"
    NOT_APPROVED = "not_approved"

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(SQLEnum(UserRole), nullable=False)
    status = Column(SQLEnum(UserStatus), nullable=False, default=UserStatus.NEW)
    is_active = Column(Boolean, default=True)

    # Profile
    first_name = Column(String(100), nullable=False)
    second_name = Column(String(100), nullable=False)
    third_name = Column(String(100), nullable=True)
    birth_date = Column(Date, nullable=True)
    phone_number = Column(String(20), nullable=True)
    avatar_url = Column(String(500), nullable=True)

    # Security fields
    last_login = Column(DateTime, nullable=True)
    failed_login_attempts = Column(Integer, default=0)
    locked_until = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    @property
    def is_approved_patient(self) -> bool:
        return self.role == UserRole.PATIENT and self.status == UserStatus.APPROVED

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"

class RefreshToken(Base):
    __tablename__ = "tokens"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String(255), nullable=False, unique=True)
    expires_at = Column(DateTime, nullable=False)
    revoked = Column(Boolean, default=False)
    created_at = Column(DateTime, server_default=func.now())

    def __repr__(self):
        return f"<RefreshToken(id={self.id}, user_id={self.user_id})>"
