from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Boolean
from sqlalchemy.sql import func

from ..core.database import Base

class Diploma(Base):
    __tablename__ = "diplomas"

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.user_id", ondelete="CASCADE"), nullable=False, index=True)
    diploma_url = Column(String(500), nullable=False)
    is_valid = Column(Boolean, nullable=True)
    added_time = Column(DateTime, server_default=func.now())

    def __repr__(self):
        return f"<Diploma(id={self.id}, doctor_id={self.doctor_id})>"
