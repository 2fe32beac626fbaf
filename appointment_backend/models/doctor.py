"""Doctor model definitions."""

from sqlalchemy import Column, DateTime, Integer, String, func

from appointment_backend.database import Base


class Doctor(Base):
    """Represents a doctor patients can book."""
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    specialty = Column(String)
    email = Column(String, unique=True, index=True)
    phone = Column(String)
    created_at = Column(DateTime, server_default=func.now())
