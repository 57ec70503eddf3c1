from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Boolean
from sqlalchemy.sql import func

from ..core.database import Base

class Passport(Base):
    __tablename__ = "passports"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    passport_url = Column(String(500), nullable=False)
    is_valid = Column(Boolean, nullable=True)
    added_time = Column(DateTime, server_default=func.now())

    def __repr__(self):
        return f"<Passport(id={self.id}, user_id={self.user_id})>"
