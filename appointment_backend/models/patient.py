"""Patient model definitions."""

from sqlalchemy import Column, Date, DateTime, Integer, String, func

from appointment_backend.database import Base


class Patient(Base):
    """Represents a patient who books appointments."""
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True)
    phone = Column(String)
    date_of_birth = Column(Date)
    created_at = Column(DateTime, server_default=func.now())
