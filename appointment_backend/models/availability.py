"""Doctor availability model definitions."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Time, func

from appointment_backend.database import Base


class AvailabilitySlot(Base):
    """Represents a window a doctor has published as open on a given day."""
    __tablename__ = "doctor_availability"

    id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)
    available_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
