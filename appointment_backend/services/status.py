import logging
from dataclasses import dataclass

from appointment_backend.errors import ConflictError, ValidationError
from appointment_backend.models.appointment import AppointmentStatus
from appointment_backend.services.conflicts import ConflictDetector
from appointment_backend.store import DOCTOR_UNAVAILABLE_MESSAGE, RecordStore

logger = logging.getLogger(__name__)

VALID_STATUS_MESSAGE = 'Valid status is required: ' + ', '.join(status.value for status in AppointmentStatus)


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a write that reports a missing row instead of raising."""

    affected: bool


def parse_status(value: str | None) -> AppointmentStatus:
    if not value:
        raise ValidationError(VALID_STATUS_MESSAGE)
    try:
        return AppointmentStatus(value)
    except ValueError as exc:
        raise ValidationError(VALID_STATUS_MESSAGE) from exc


class StatusTransitionService:
    """Moves appointments between lifecycle states.

    Any status may follow any other; there is no transition table. Moving
    an appointment out of CANCELLED re-checks its interval, since the slot
    may have been booked again in the meantime.
    """

    def __init__(self, store: RecordStore):
        self.store = store
        self.conflicts = ConflictDetector(store)

    def cancel(self, appointment_id: int, cancel_reason: str | None = None) -> TransitionResult:
        with self.store.atomic() as store:
            affected = store.update_appointment_status(
                appointment_id,
                AppointmentStatus.CANCELLED,
                cancel_reason=cancel_reason or None,
            )

        if affected:
            logger.info('Cancelled appointment %s', appointment_id)
        return TransitionResult(affected=bool(affected))

    def update_status(self, appointment_id: int, status: str | None) -> TransitionResult:
        new_status = parse_status(status)

        with self.store.atomic() as store:
            if new_status is not AppointmentStatus.CANCELLED:
                appointment = store.get_appointment(appointment_id)
                if appointment is None:
                    return TransitionResult(affected=False)
                self._ensure_slot_free(appointment)

            affected = store.update_appointment_status(appointment_id, new_status)

        if affected:
            logger.info('Set appointment %s status to %s', appointment_id, new_status.value)
        return TransitionResult(affected=bool(affected))

    def _ensure_slot_free(self, appointment) -> None:
        self.store.lock_doctor(appointment.doctor_id)
        conflicts = self.conflicts.find_conflicts(
            appointment.doctor_id,
            appointment.start_time,
            appointment.end_time,
            ignore_appointment_id=appointment.id,
        )
        if conflicts:
            logger.warning(
                'Rejected status change for appointment %s: overlaps appointment %s',
                appointment.id,
                conflicts[0].id,
            )
            raise ConflictError(DOCTOR_UNAVAILABLE_MESSAGE)
