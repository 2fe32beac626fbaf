import logging
from dataclasses import dataclass
from datetime import datetime

from appointment_backend.errors import ConflictError, ValidationError
from appointment_backend.models.appointment import AppointmentStatus
from appointment_backend.services.conflicts import ConflictDetector
from appointment_backend.store import DOCTOR_UNAVAILABLE_MESSAGE, RecordStore

logger = logging.getLogger(__name__)


def _is_aware(value: datetime) -> bool:
    return value.tzinfo is not None and value.utcoffset() is not None


@dataclass(frozen=True)
class BookingResult:
    appointment_id: int


class BookingService:
    """Validates and commits new appointments."""

    def __init__(self, store: RecordStore):
        self.store = store
        self.conflicts = ConflictDetector(store)

    def book(
        self,
        patient_id: int | None,
        doctor_id: int | None,
        start_time: datetime | None,
        end_time: datetime | None,
        reason: str | None = None,
    ) -> BookingResult:
        """Reserve ``[start_time, end_time)`` with a doctor for a patient.

        The referential checks, the overlap scan and the insert share one
        transaction. The doctor row is locked before the scan so two bookings
        for the same doctor cannot both pass it.
        """
        if patient_id is None or doctor_id is None or start_time is None or end_time is None:
            raise ValidationError('patient_id, doctor_id, start_time, end_time are required')

        if _is_aware(start_time) != _is_aware(end_time):
            raise ValidationError('start_time and end_time must both include a UTC offset or both omit it')

        if start_time >= end_time:
            raise ValidationError('start_time must be earlier than end_time')

        with self.store.atomic() as store:
            if store.get_patient(patient_id) is None:
                raise ValidationError('Invalid patient_id (patient not found)')

            if store.lock_doctor(doctor_id) is None:
                raise ValidationError('Invalid doctor_id (doctor not found)')

            conflicts = self.conflicts.find_conflicts(doctor_id, start_time, end_time)
            if conflicts:
                logger.warning(
                    'Rejected booking for doctor %s at %s-%s: overlaps appointment %s',
                    doctor_id,
                    start_time,
                    end_time,
                    conflicts[0].id,
                )
                raise ConflictError(DOCTOR_UNAVAILABLE_MESSAGE)

            appointment = store.insert_appointment(
                patient_id=patient_id,
                doctor_id=doctor_id,
                start_time=start_time,
                end_time=end_time,
                status=AppointmentStatus.BOOKED.value,
                reason=reason or None,
            )
            appointment_id = appointment.id

        logger.info('Booked appointment %s for doctor %s', appointment_id, doctor_id)
        return BookingResult(appointment_id=appointment_id)
