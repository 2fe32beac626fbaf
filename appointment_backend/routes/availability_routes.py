from datetime import date, time

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from appointment_backend.routes.dependencies import ensure_database_ready, get_db
from appointment_backend.services.availability import AvailabilityPatch, AvailabilityService
from appointment_backend.store import RecordStore

router = APIRouter(tags=['doctor availability'])


class CreateAvailabilityRequest(BaseModel):
    doctor_id: int | None = None
    available_date: date | None = None
    start_time: time | None = None
    end_time: time | None = None


class AvailabilitySlotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    doctor_id: int
    available_date: date
    start_time: time
    end_time: time


class AvailabilityCreatedResponse(BaseModel):
    message: str
    availability_id: int


class AvailabilityUpdatedResponse(BaseModel):
    message: str
    slot: AvailabilitySlotResponse


class AvailabilityDeletedResponse(BaseModel):
    message: str
    affected: bool


@router.post('', response_model=AvailabilityCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_availability_slot(data: CreateAvailabilityRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    slot = AvailabilityService(RecordStore(db)).create(
        doctor_id=data.doctor_id,
        available_date=data.available_date,
        start_time=data.start_time,
        end_time=data.end_time,
    )

    return AvailabilityCreatedResponse(message='Availability slot created successfully', availability_id=slot.id)


@router.get('/{slot_id}', response_model=AvailabilitySlotResponse)
def get_availability_slot(slot_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    return AvailabilityService(RecordStore(db)).get(slot_id)


@router.put('/{slot_id}', response_model=AvailabilityUpdatedResponse)
def update_availability_slot(slot_id: int, data: AvailabilityPatch, db: Session = Depends(get_db)):
    ensure_database_ready()

    slot = AvailabilityService(RecordStore(db)).update(slot_id, data)

    return AvailabilityUpdatedResponse(
        message='Availability slot updated successfully',
        slot=AvailabilitySlotResponse.model_validate(slot),
    )


@router.delete('/{slot_id}', response_model=AvailabilityDeletedResponse)
def remove_availability_slot(slot_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    result = AvailabilityService(RecordStore(db)).remove(slot_id)

    return AvailabilityDeletedResponse(
        message='Availability slot deleted successfully' if result.affected else 'No availability deleted',
        affected=result.affected,
    )
