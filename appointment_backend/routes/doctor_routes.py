from datetime import date, datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from appointment_backend.routes.appointment_routes import AppointmentResponse
from appointment_backend.routes.availability_routes import AvailabilitySlotResponse
from appointment_backend.routes.dependencies import ensure_database_ready, get_db
from appointment_backend.services.availability import AvailabilityService
from appointment_backend.services.schedule import ScheduleService
from appointment_backend.store import RecordStore

router = APIRouter(tags=['doctors'])


class DoctorScheduleResponse(BaseModel):
    doctor_id: int
    range_start: datetime
    range_end: datetime
    is_default_range: bool
    appointments: list[AppointmentResponse]


class DoctorAvailabilityResponse(BaseModel):
    doctor_id: int
    requested_date: date | None = None
    range_start: date | None = None
    range_end: date | None = None
    availability: list[AvailabilitySlotResponse]


@router.get('/{doctor_id}/schedule', response_model=DoctorScheduleResponse)
def get_doctor_schedule(
    doctor_id: int,
    date_from: date | None = Query(default=None, alias='from'),
    date_to: date | None = Query(default=None, alias='to'),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    schedule = ScheduleService(RecordStore(db)).get_doctor_schedule(doctor_id, date_from, date_to)

    return DoctorScheduleResponse(
        doctor_id=schedule.doctor_id,
        range_start=schedule.range_start,
        range_end=schedule.range_end,
        is_default_range=schedule.is_default_range,
        appointments=[AppointmentResponse.model_validate(appointment) for appointment in schedule.appointments],
    )


@router.get('/{doctor_id}/availability', response_model=DoctorAvailabilityResponse)
def get_doctor_availability(
    doctor_id: int,
    on_date: date | None = Query(default=None, alias='date'),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    view = AvailabilityService(RecordStore(db)).get_for_doctor(doctor_id, on_date)

    return DoctorAvailabilityResponse(
        doctor_id=view.doctor_id,
        requested_date=view.on_date,
        range_start=view.range_start,
        range_end=view.range_end,
        availability=[AvailabilitySlotResponse.model_validate(slot) for slot in view.slots],
    )
