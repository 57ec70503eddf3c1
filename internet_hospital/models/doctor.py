from sqlalchemy import Column, Integer, String, ForeignKey, Boolean, Text

from ..core.database import Base

class Doctor(Base):
    __tablename__ = "doctors"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    specialization_id = Column(Integer, ForeignKey("specializations.id"), nullable=True, index=True)

    # Professional information
    address = Column(String(255), nullable=True)
    doctors_info = Column(Text, nullable=True)
    license_url = Column(String(500), nullable=True)

    # None until an administrator has reviewed the documents
    is_approved = Column(Boolean, nullable=True)

    def __repr__(self):
        return f"<Doctor(user_id={self.user_id}, specialization_id={self.specialization_id})>"
