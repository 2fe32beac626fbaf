import logging
from dataclasses import dataclass, field
from datetime import date, time, timedelta

from pydantic import BaseModel, ConfigDict

from appointment_backend.core import config
from appointment_backend.errors import NotFoundError, ValidationError
from appointment_backend.models.availability import AvailabilitySlot
from appointment_backend.services.status import TransitionResult
from appointment_backend.store import RecordStore

logger = logging.getLogger(__name__)

INVALID_DOCTOR_MESSAGE = 'Invalid doctor_id (doctor not found)'
INVALID_WINDOW_MESSAGE = 'start_time must be earlier than end_time'


class AvailabilityPatch(BaseModel):
    """Field overrides for an existing slot. Unset and null fields keep the stored value."""

    model_config = ConfigDict(frozen=True)

    doctor_id: int | None = None
    available_date: date | None = None
    start_time: time | None = None
    end_time: time | None = None

    def merge_over(self, slot: AvailabilitySlot) -> dict:
        merged = {name: getattr(slot, name) for name in type(self).model_fields}
        merged.update(self.model_dump(exclude_none=True))
        return merged


@dataclass
class AvailabilityView:
    doctor_id: int
    on_date: date | None
    range_start: date | None
    range_end: date | None
    slots: list[AvailabilitySlot] = field(default_factory=list)


def validate_window(start_time: time, end_time: time) -> None:
    if start_time >= end_time:
        raise ValidationError(INVALID_WINDOW_MESSAGE)


class AvailabilityService:
    """Publishes, edits and lists the open windows of doctors."""

    def __init__(self, store: RecordStore):
        self.store = store

    def get(self, slot_id: int) -> AvailabilitySlot:
        with self.store.atomic() as store:
            slot = store.get_availability_slot(slot_id)

        if slot is None:
            raise NotFoundError('Availability slot not found')
        return slot

    def create(
        self,
        doctor_id: int | None,
        available_date: date | None,
        start_time: time | None,
        end_time: time | None,
    ) -> AvailabilitySlot:
        if doctor_id is None or available_date is None or start_time is None or end_time is None:
            raise ValidationError('doctor_id, available_date, start_time, end_time are required')

        validate_window(start_time, end_time)

        with self.store.atomic() as store:
            if store.get_doctor(doctor_id) is None:
                raise ValidationError(INVALID_DOCTOR_MESSAGE)

            slot = store.insert_availability_slot(
                doctor_id=doctor_id,
                available_date=available_date,
                start_time=start_time,
                end_time=end_time,
            )

        logger.info('Created availability slot %s for doctor %s on %s', slot.id, doctor_id, available_date)
        return slot

    def update(self, slot_id: int, patch: AvailabilityPatch) -> AvailabilitySlot:
        """Merge ``patch`` over the stored slot and persist the result.

        The window check runs on the merged values, so moving only the end
        time before the stored start time is rejected.
        """
        with self.store.atomic() as store:
            current = store.get_availability_slot(slot_id)
            if current is None:
                raise NotFoundError('Availability slot not found')

            merged = patch.merge_over(current)
            validate_window(merged['start_time'], merged['end_time'])

            if merged['doctor_id'] != current.doctor_id and store.get_doctor(merged['doctor_id']) is None:
                raise ValidationError(INVALID_DOCTOR_MESSAGE)

            store.update_availability_slot(slot_id, **merged)
            slot = store.get_availability_slot(slot_id, refresh=True)

        logger.info('Updated availability slot %s', slot_id)
        return slot

    def remove(self, slot_id: int) -> TransitionResult:
        with self.store.atomic() as store:
            affected = store.delete_availability_slot(slot_id)

        if affected:
            logger.info('Deleted availability slot %s', slot_id)
        return TransitionResult(affected=bool(affected))

    def get_for_doctor(
        self,
        doctor_id: int,
        on_date: date | None = None,
        today: date | None = None,
    ) -> AvailabilityView:
        with self.store.atomic() as store:
            if store.get_doctor(doctor_id) is None:
                raise ValidationError(INVALID_DOCTOR_MESSAGE)

            if on_date is not None:
                slots = store.query_availability(doctor_id, on_date=on_date)
                return AvailabilityView(doctor_id, on_date, None, None, slots)

            range_start = today or date.today()
            range_end = range_start + timedelta(days=config.AVAILABILITY_WINDOW_DAYS)
            slots = store.query_availability(doctor_id, date_from=range_start, date_to=range_end)

        return AvailabilityView(doctor_id, None, range_start, range_end, slots)
