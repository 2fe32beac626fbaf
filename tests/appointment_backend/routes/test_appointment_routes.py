from datetime import date, datetime

import pytest
from pydantic import ValidationError

from appointment_backend import errors
from appointment_backend.models.appointment import Appointment, AppointmentStatus
from appointment_backend.routes.appointment_routes import (
    BookAppointmentRequest,
    CancelAppointmentRequest,
    UpdateStatusRequest,
    book_appointment,
    cancel_appointment,
    get_appointment,
    update_appointment_status,
)
from appointment_backend.routes.doctor_routes import get_doctor_schedule


@pytest.fixture(autouse=True)
def skip_schema_checks(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('appointment_backend.routes.appointment_routes.ensure_database_ready', lambda: None)
    monkeypatch.setattr('appointment_backend.routes.doctor_routes.ensure_database_ready', lambda: None)


def _booking_request(doctor, patient, **overrides) -> BookAppointmentRequest:
    fields = {
        'patient_id': patient.id,
        'doctor_id': doctor.id,
        'start_time': datetime(2026, 3, 16, 9, 0),
        'end_time': datetime(2026, 3, 16, 9, 30),
        'reason': 'Routine checkup',
    }
    fields.update(overrides)
    return BookAppointmentRequest(**fields)


def test_book_appointment_request_normalizes_reason() -> None:
    request = BookAppointmentRequest(reason='  Follow-up visit  ')

    assert request.reason == 'Follow-up visit'
    assert BookAppointmentRequest(reason='   ').reason is None


def test_book_appointment_request_rejects_long_reason() -> None:
    with pytest.raises(ValidationError):
        BookAppointmentRequest(reason='x' * 501)


def test_book_appointment_returns_identity(db, doctor, patient) -> None:
    response = book_appointment(_booking_request(doctor, patient), db=db)

    assert response.message == 'Appointment booked successfully'
    assert db.get(Appointment, response.appointment_id).reason == 'Routine checkup'


def test_book_appointment_reports_missing_fields(db) -> None:
    with pytest.raises(errors.ValidationError) as exception_info:
        book_appointment(BookAppointmentRequest(), db=db)

    assert exception_info.value.status_code == 400


def test_book_appointment_conflict_maps_to_409(db, doctor, patient) -> None:
    book_appointment(_booking_request(doctor, patient), db=db)

    with pytest.raises(errors.ConflictError) as exception_info:
        book_appointment(
            _booking_request(doctor, patient, start_time=datetime(2026, 3, 16, 9, 15)),
            db=db,
        )

    assert exception_info.value.status_code == 409


def test_get_appointment_returns_stored_row(db, doctor, patient) -> None:
    booked = book_appointment(_booking_request(doctor, patient), db=db)

    appointment = get_appointment(appointment_id=booked.appointment_id, db=db)

    assert appointment.id == booked.appointment_id
    assert appointment.status == AppointmentStatus.BOOKED.value


def test_get_appointment_missing_maps_to_404(db) -> None:
    with pytest.raises(errors.NotFoundError) as exception_info:
        get_appointment(appointment_id=999, db=db)

    assert exception_info.value.status_code == 404


def test_cancel_appointment_without_body(db, doctor, patient) -> None:
    booked = book_appointment(_booking_request(doctor, patient), db=db)

    response = cancel_appointment(appointment_id=booked.appointment_id, data=None, db=db)

    assert response.message == 'Appointment cancelled successfully'
    assert response.affected is True
    assert db.get(Appointment, booked.appointment_id).cancel_reason is None


def test_cancel_appointment_records_reason(db, doctor, patient) -> None:
    booked = book_appointment(_booking_request(doctor, patient), db=db)

    cancel_appointment(
        appointment_id=booked.appointment_id,
        data=CancelAppointmentRequest(cancel_reason=' Patient unavailable '),
        db=db,
    )

    assert db.get(Appointment, booked.appointment_id).cancel_reason == 'Patient unavailable'


def test_cancel_missing_appointment_is_soft_failure(db) -> None:
    response = cancel_appointment(appointment_id=999, data=None, db=db)

    assert response.message == 'No appointment cancelled'
    assert response.affected is False


def test_update_appointment_status_messages(db, doctor, patient) -> None:
    booked = book_appointment(_booking_request(doctor, patient), db=db)

    updated = update_appointment_status(
        appointment_id=booked.appointment_id,
        data=UpdateStatusRequest(status='CONFIRMED'),
        db=db,
    )
    missing = update_appointment_status(appointment_id=999, data=UpdateStatusRequest(status='CONFIRMED'), db=db)

    assert updated.message == 'Appointment status updated successfully'
    assert missing.message == 'No appointment updated'
    assert missing.affected is False


def test_update_appointment_status_rejects_unknown_value(db, doctor, patient) -> None:
    booked = book_appointment(_booking_request(doctor, patient), db=db)

    with pytest.raises(errors.ValidationError) as exception_info:
        update_appointment_status(
            appointment_id=booked.appointment_id,
            data=UpdateStatusRequest(status='MAYBE'),
            db=db,
        )

    assert exception_info.value.status_code == 400


def test_doctor_schedule_lists_cancelled_appointments(db, doctor, patient) -> None:
    first = book_appointment(_booking_request(doctor, patient), db=db)
    cancel_appointment(appointment_id=first.appointment_id, data=None, db=db)
    second = book_appointment(_booking_request(doctor, patient), db=db)

    response = get_doctor_schedule(
        doctor_id=doctor.id,
        date_from=date(2026, 3, 16),
        date_to=date(2026, 3, 16),
        db=db,
    )

    assert response.is_default_range is False
    assert [(item.id, item.status) for item in response.appointments] == [
        (first.appointment_id, AppointmentStatus.CANCELLED.value),
        (second.appointment_id, AppointmentStatus.BOOKED.value),
    ]


def test_update_appointment_status_conflict_maps_to_409(db, doctor, patient) -> None:
    first = book_appointment(_booking_request(doctor, patient), db=db)
    cancel_appointment(appointment_id=first.appointment_id, data=None, db=db)
    book_appointment(_booking_request(doctor, patient), db=db)

    with pytest.raises(errors.ConflictError) as exception_info:
        update_appointment_status(
            appointment_id=first.appointment_id,
            data=UpdateStatusRequest(status='BOOKED'),
            db=db,
        )

    assert exception_info.value.status_code == 409


def test_book_appointment_mixed_offsets_maps_to_400(db, doctor, patient) -> None:
    request = BookAppointmentRequest(
        patient_id=patient.id,
        doctor_id=doctor.id,
        start_time='2026-03-16T09:00:00Z',
        end_time='2026-03-16T10:00:00',
    )

    with pytest.raises(errors.ValidationError) as exception_info:
        book_appointment(request, db=db)

    assert exception_info.value.status_code == 400
