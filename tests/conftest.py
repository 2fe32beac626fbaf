import os
from datetime import datetime

import pytest

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from appointment_backend.database import Base, build_engine, build_session_factory  # noqa: E402
from appointment_backend.models.appointment import Appointment, AppointmentStatus  # noqa: E402
from appointment_backend.models.availability import AvailabilitySlot  # noqa: E402,F401
from appointment_backend.models.doctor import Doctor  # noqa: E402
from appointment_backend.models.patient import Patient  # noqa: E402
from appointment_backend.store import RecordStore  # noqa: E402


@pytest.fixture
def engine(tmp_path):
    # File-backed so that threads in the concurrency tests share one database.
    engine = build_engine(f"sqlite:///{tmp_path / 'appointments.db'}")
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db) -> RecordStore:
    return RecordStore(db)


@pytest.fixture
def doctor(db) -> Doctor:
    doctor = Doctor(first_name='Sarah', last_name='Smith', specialty='Cardiology')
    db.add(doctor)
    db.commit()
    return doctor


@pytest.fixture
def other_doctor(db) -> Doctor:
    doctor = Doctor(first_name='Omar', last_name='Haddad', specialty='Dermatology')
    db.add(doctor)
    db.commit()
    return doctor


@pytest.fixture
def patient(db) -> Patient:
    patient = Patient(first_name='John', last_name='Doe')
    db.add(patient)
    db.commit()
    return patient


@pytest.fixture
def make_appointment(db, doctor, patient):
    def _make_appointment(
        start_time: datetime,
        end_time: datetime,
        status: AppointmentStatus = AppointmentStatus.BOOKED,
        doctor_id: int | None = None,
    ) -> Appointment:
        appointment = Appointment(
            patient_id=patient.id,
            doctor_id=doctor_id or doctor.id,
            start_time=start_time,
            end_time=end_time,
            status=status.value,
        )
        db.add(appointment)
        db.commit()
        return appointment

    return _make_appointment
