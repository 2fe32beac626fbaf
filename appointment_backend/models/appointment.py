"""Appointment model definitions."""

import enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func

from appointment_backend.database import Base


class AppointmentStatus(str, enum.Enum):
    """Lifecycle states an appointment may be set to, in any order."""

    BOOKED = "BOOKED"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class Appointment(Base):
    """Represents a patient's reserved time with a doctor."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(String, nullable=False, default=AppointmentStatus.BOOKED.value)
    reason = Column(String)
    cancel_reason = Column(String)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
