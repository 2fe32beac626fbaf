"""Overlap detection between a candidate interval and a doctor's appointments.

Intervals are half-open, ``[start, end)``: an appointment ending at 10:00 and
another starting at 10:00 do not overlap. Cancelled appointments never block.
"""

from datetime import datetime

from appointment_backend.models.appointment import Appointment, AppointmentStatus
from appointment_backend.store import RecordStore


def intervals_overlap(
    first_start: datetime,
    first_end: datetime,
    second_start: datetime,
    second_end: datetime,
) -> bool:
    return first_start < second_end and second_start < first_end


class ConflictDetector:
    """Answers whether a doctor is already committed during an interval.

    Every call reads the store; results are never cached because concurrent
    bookings change the appointment set between calls.
    """

    def __init__(self, store: RecordStore):
        self.store = store

    def find_conflicts(
        self,
        doctor_id: int,
        start_time: datetime,
        end_time: datetime,
        ignore_appointment_id: int | None = None,
    ) -> list[Appointment]:
        return self.store.query_appointments_overlapping(
            doctor_id,
            start_time,
            end_time,
            exclude_status=AppointmentStatus.CANCELLED,
            exclude_appointment_id=ignore_appointment_id,
        )

    def has_conflict(self, doctor_id: int, start_time: datetime, end_time: datetime) -> bool:
        return bool(self.find_conflicts(doctor_id, start_time, end_time))
