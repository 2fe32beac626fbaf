"""Record store over the SQLAlchemy session.

All reads and writes of doctors, patients, appointments and availability
slots go through :class:`RecordStore`. Services wrap each request in
``RecordStore.atomic()`` so that a request either commits as a whole or
leaves nothing behind.
"""

import logging
from contextlib import contextmanager
from datetime import date, datetime
from typing import Iterator

from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from appointment_backend.database import APPOINTMENT_OVERLAP_CONSTRAINT
from appointment_backend.errors import ConflictError, StoreError
from appointment_backend.models.appointment import Appointment, AppointmentStatus
from appointment_backend.models.availability import AvailabilitySlot
from appointment_backend.models.doctor import Doctor
from appointment_backend.models.patient import Patient

logger = logging.getLogger(__name__)

STORE_UNAVAILABLE_MESSAGE = 'Database unavailable. Verify DATABASE_URL and database credentials.'
STORE_FAILURE_MESSAGE = 'Database operation failed.'
DOCTOR_UNAVAILABLE_MESSAGE = 'Doctor is not available for the requested time slot'
EXCLUSION_VIOLATION_SQLSTATE = '23P01'

_KEEP = object()


def _is_overlap_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    sqlstate = getattr(orig, 'sqlstate', None) or getattr(orig, 'pgcode', None)
    return sqlstate == EXCLUSION_VIOLATION_SQLSTATE or APPOINTMENT_OVERLAP_CONSTRAINT in str(orig)


class RecordStore:
    """Keyed lookups, filtered queries and single-row writes per entity."""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def atomic(self) -> Iterator['RecordStore']:
        try:
            yield self
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception('Record store operation failed')
            if isinstance(exc, (OperationalError, InterfaceError)):
                raise StoreError(STORE_UNAVAILABLE_MESSAGE) from exc
            raise StoreError(STORE_FAILURE_MESSAGE) from exc
        except Exception:
            self.db.rollback()
            raise

    # Doctors and patients

    def get_doctor(self, doctor_id: int) -> Doctor | None:
        return self.db.query(Doctor).filter(Doctor.id == doctor_id).first()

    def lock_doctor(self, doctor_id: int) -> Doctor | None:
        """Load the doctor row with ``FOR UPDATE``.

        Holding this lock until commit serializes bookings for the same
        doctor on databases with row locks. SQLite ignores the clause; its
        engine begins every transaction with ``BEGIN IMMEDIATE`` instead.
        """
        return self.db.query(Doctor).filter(Doctor.id == doctor_id).with_for_update().first()

    def get_patient(self, patient_id: int) -> Patient | None:
        return self.db.query(Patient).filter(Patient.id == patient_id).first()

    # Appointments

    def get_appointment(self, appointment_id: int) -> Appointment | None:
        return self.db.query(Appointment).filter(Appointment.id == appointment_id).first()

    def insert_appointment(self, **fields) -> Appointment:
        appointment = Appointment(**fields)
        self.db.add(appointment)
        try:
            self.db.flush()
        except IntegrityError as exc:
            if _is_overlap_violation(exc):
                raise ConflictError(DOCTOR_UNAVAILABLE_MESSAGE) from exc
            raise
        return appointment

    def update_appointment_status(
        self,
        appointment_id: int,
        status: AppointmentStatus,
        cancel_reason=_KEEP,
    ) -> int:
        values = {Appointment.status: status.value}
        if cancel_reason is not _KEEP:
            values[Appointment.cancel_reason] = cancel_reason

        try:
            return self.db.query(Appointment).filter(Appointment.id == appointment_id).update(
                values,
                synchronize_session='fetch',
            )
        except IntegrityError as exc:
            if _is_overlap_violation(exc):
                raise ConflictError(DOCTOR_UNAVAILABLE_MESSAGE) from exc
            raise

    def query_appointments_overlapping(
        self,
        doctor_id: int,
        start_time: datetime,
        end_time: datetime,
        exclude_status: AppointmentStatus = AppointmentStatus.CANCELLED,
        exclude_appointment_id: int | None = None,
    ) -> list[Appointment]:
        query = self.db.query(Appointment).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.status != exclude_status.value,
            Appointment.start_time < end_time,
            Appointment.end_time > start_time,
        )
        if exclude_appointment_id is not None:
            query = query.filter(Appointment.id != exclude_appointment_id)
        return query.order_by(Appointment.start_time.asc()).all()

    def query_appointments_in_range(
        self,
        doctor_id: int,
        range_start: datetime,
        range_end: datetime,
    ) -> list[Appointment]:
        return self.db.query(Appointment).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.start_time >= range_start,
            Appointment.start_time <= range_end,
        ).order_by(Appointment.start_time.asc(), Appointment.id.asc()).all()

    # Availability slots

    def get_availability_slot(self, slot_id: int, refresh: bool = False) -> AvailabilitySlot | None:
        return self.db.get(AvailabilitySlot, slot_id, populate_existing=refresh)

    def insert_availability_slot(self, **fields) -> AvailabilitySlot:
        slot = AvailabilitySlot(**fields)
        self.db.add(slot)
        self.db.flush()
        return slot

    def update_availability_slot(self, slot_id: int, **fields) -> int:
        values = {getattr(AvailabilitySlot, name): value for name, value in fields.items()}
        return self.db.query(AvailabilitySlot).filter(AvailabilitySlot.id == slot_id).update(
            values,
            synchronize_session='fetch',
        )

    def delete_availability_slot(self, slot_id: int) -> int:
        return self.db.query(AvailabilitySlot).filter(AvailabilitySlot.id == slot_id).delete(
            synchronize_session='fetch',
        )

    def query_availability(
        self,
        doctor_id: int,
        on_date: date | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[AvailabilitySlot]:
        query = self.db.query(AvailabilitySlot).filter(AvailabilitySlot.doctor_id == doctor_id)

        if on_date is not None:
            query = query.filter(AvailabilitySlot.available_date == on_date)
        else:
            if date_from is not None:
                query = query.filter(AvailabilitySlot.available_date >= date_from)
            if date_to is not None:
                query = query.filter(AvailabilitySlot.available_date <= date_to)

        return query.order_by(
            AvailabilitySlot.available_date.asc(),
            AvailabilitySlot.start_time.asc(),
        ).all()
