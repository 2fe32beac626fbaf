from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta

from appointment_backend.core import config
from appointment_backend.errors import NotFoundError
from appointment_backend.models.appointment import Appointment
from appointment_backend.store import RecordStore

DAY_START = time(0, 0, 0)
DAY_END = time(23, 59, 59)


@dataclass
class ScheduleView:
    doctor_id: int
    range_start: datetime
    range_end: datetime
    is_default_range: bool
    appointments: list[Appointment] = field(default_factory=list)


class ScheduleService:
    """Read-only views over a doctor's appointments."""

    def __init__(self, store: RecordStore):
        self.store = store

    def get_appointment(self, appointment_id: int) -> Appointment:
        with self.store.atomic() as store:
            appointment = store.get_appointment(appointment_id)

        if appointment is None:
            raise NotFoundError('Appointment not found')
        return appointment

    def get_doctor_schedule(
        self,
        doctor_id: int,
        date_from: date | None = None,
        date_to: date | None = None,
        now: datetime | None = None,
    ) -> ScheduleView:
        """Appointments starting inside the requested days, earliest first.

        Without both bounds the window is the next ``SCHEDULE_WINDOW_DAYS``
        from ``now``. Cancelled appointments are included.
        """
        if date_from is not None and date_to is not None:
            range_start = datetime.combine(date_from, DAY_START)
            range_end = datetime.combine(date_to, DAY_END)
            is_default_range = False
        else:
            range_start = now or datetime.now()
            range_end = range_start + timedelta(days=config.SCHEDULE_WINDOW_DAYS)
            is_default_range = True

        with self.store.atomic() as store:
            appointments = store.query_appointments_in_range(doctor_id, range_start, range_end)

        return ScheduleView(
            doctor_id=doctor_id,
            range_start=range_start,
            range_end=range_end,
            is_default_range=is_default_range,
            appointments=appointments,
        )
