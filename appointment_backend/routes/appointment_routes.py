from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy.orm import Session

from appointment_backend.routes.dependencies import ensure_database_ready, get_db
from appointment_backend.services.booking import BookingService
from appointment_backend.services.schedule import ScheduleService
from appointment_backend.services.status import StatusTransitionService
from appointment_backend.store import RecordStore

router = APIRouter(tags=['appointments'])

MAX_REASON_LENGTH = 500


def _normalize_optional_text(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > MAX_REASON_LENGTH:
        raise ValueError(f'Reasons must be {MAX_REASON_LENGTH} characters or fewer.')

    return normalized


class BookAppointmentRequest(BaseModel):
    patient_id: int | None = None
    doctor_id: int | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    reason: str | None = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        return _normalize_optional_text(value)


class CancelAppointmentRequest(BaseModel):
    cancel_reason: str | None = None

    @field_validator('cancel_reason')
    @classmethod
    def validate_cancel_reason(cls, value: str | None) -> str | None:
        return _normalize_optional_text(value)


class UpdateStatusRequest(BaseModel):
    status: str | None = None


class BookingResponse(BaseModel):
    message: str
    appointment_id: int


class TransitionResponse(BaseModel):
    message: str
    affected: bool


class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    doctor_id: int
    start_time: datetime
    end_time: datetime
    status: str
    reason: str | None = None
    cancel_reason: str | None = None


@router.post('', response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(data: BookAppointmentRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    result = BookingService(RecordStore(db)).book(
        patient_id=data.patient_id,
        doctor_id=data.doctor_id,
        start_time=data.start_time,
        end_time=data.end_time,
        reason=data.reason,
    )

    return BookingResponse(message='Appointment booked successfully', appointment_id=result.appointment_id)


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(appointment_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    return ScheduleService(RecordStore(db)).get_appointment(appointment_id)


@router.put('/{appointment_id}/cancel', response_model=TransitionResponse)
def cancel_appointment(
    appointment_id: int,
    data: CancelAppointmentRequest | None = None,
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    cancel_reason = data.cancel_reason if data else None
    result = StatusTransitionService(RecordStore(db)).cancel(appointment_id, cancel_reason)

    return TransitionResponse(
        message='Appointment cancelled successfully' if result.affected else 'No appointment cancelled',
        affected=result.affected,
    )


@router.put('/{appointment_id}/status', response_model=TransitionResponse)
def update_appointment_status(
    appointment_id: int,
    data: UpdateStatusRequest,
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    result = StatusTransitionService(RecordStore(db)).update_status(appointment_id, data.status)

    return TransitionResponse(
        message='Appointment status updated successfully' if result.affected else 'No appointment updated',
        affected=result.affected,
    )
