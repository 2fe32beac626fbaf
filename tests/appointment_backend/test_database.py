from sqlalchemy import inspect, text

from appointment_backend.database import (
    build_engine,
    ensure_appointment_schema,
    ensure_availability_schema,
)


def test_ensure_appointment_schema_adds_missing_columns_and_index(tmp_path) -> None:
    engine = build_engine(f"sqlite:///{tmp_path / 'legacy.db'}")
    with engine.begin() as connection:
        connection.execute(
            text(
                'CREATE TABLE appointments ('
                'id INTEGER PRIMARY KEY, patient_id INTEGER, doctor_id INTEGER, '
                'start_time DATETIME, end_time DATETIME, status VARCHAR)'
            )
        )

    try:
        ensure_appointment_schema(engine)

        inspector = inspect(engine)
        columns = {column['name'] for column in inspector.get_columns('appointments')}
        indexes = {index['name'] for index in inspector.get_indexes('appointments')}
        assert {'reason', 'cancel_reason'} <= columns
        assert 'idx_appointments_doctor_start' in indexes
    finally:
        engine.dispose()


def test_ensure_availability_schema_skips_missing_table(tmp_path) -> None:
    engine = build_engine(f"sqlite:///{tmp_path / 'empty.db'}")

    try:
        ensure_availability_schema(engine)

        assert 'doctor_availability' not in inspect(engine).get_table_names()
    finally:
        engine.dispose()


def test_ensure_availability_schema_creates_lookup_index(engine) -> None:
    ensure_availability_schema(engine)

    indexes = {index['name'] for index in inspect(engine).get_indexes('doctor_availability')}
    assert 'idx_doctor_availability_doctor_date' in indexes


def test_sqlite_engine_begins_immediate_transactions(engine) -> None:
    with engine.connect() as connection:
        connection.execute(text('SELECT 1'))
        assert connection.connection.dbapi_connection.in_transaction
