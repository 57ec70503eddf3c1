from sqlalchemy import Column, Integer, String, Text

from ..core.database import Base

class Specialization(Base):
    __tablename__ = "specializations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)

    def __repr__(self):
        return f"<Specialization(id={self.id}, name='{self.name}')>"
