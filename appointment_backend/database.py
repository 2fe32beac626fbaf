import logging
from threading import Lock

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker

from appointment_backend.core import config

logger = logging.getLogger(__name__)

APPOINTMENT_OVERLAP_CONSTRAINT = 'appointments_no_overlap'


def _serialize_sqlite_writers(engine: Engine) -> None:
    # pysqlite defers BEGIN until the first write, so a conflict scan and the
    # insert that follows it would not be isolated. Take the write lock up front.
    @event.listens_for(engine, 'connect')
    def _disable_pysqlite_transactions(dbapi_connection, _connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, 'begin')
    def _begin_immediate(connection):
        connection.exec_driver_sql('BEGIN IMMEDIATE')


def build_engine(database_url: str, echo: bool = False) -> Engine:
    if make_url(database_url).get_backend_name() == 'sqlite':
        engine = create_engine(
            database_url,
            echo=echo,
            connect_args={
                'check_same_thread': False,
                'timeout': config.SQLITE_BUSY_TIMEOUT_SECONDS,
            },
        )
        _serialize_sqlite_writers(engine)
        return engine

    return create_engine(database_url, echo=echo, pool_pre_ping=True)


def build_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=bind,
    )


engine = build_engine(config.DATABASE_URL, echo=config.DB_ECHO)

SessionLocal = build_session_factory(engine)

Base = declarative_base()

_schema_lock = Lock()
_checked_schemas: set[tuple[str, str]] = set()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_availability_schema(bind: Engine | None = None) -> None:
    bind = bind or engine
    schema_key = (str(bind.url), 'doctor_availability')

    if schema_key in _checked_schemas:
        return

    with _schema_lock:
        if schema_key in _checked_schemas:
            return

        inspector = inspect(bind)

        if 'doctor_availability' not in inspector.get_table_names():
            _checked_schemas.add(schema_key)
            return

        with bind.begin() as connection:
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_doctor_availability_doctor_date '
                    'ON doctor_availability(doctor_id, available_date, start_time)'
                )
            )

        _checked_schemas.add(schema_key)


def ensure_appointment_schema(bind: Engine | None = None) -> None:
    bind = bind or engine
    schema_key = (str(bind.url), 'appointments')

    if schema_key in _checked_schemas:
        return

    with _schema_lock:
        if schema_key in _checked_schemas:
            return

        inspector = inspect(bind)

        if 'appointments' not in inspector.get_table_names():
            _checked_schemas.add(schema_key)
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
        migration_steps = [
            ('reason', 'ALTER TABLE appointments ADD COLUMN reason VARCHAR'),
            ('cancel_reason', 'ALTER TABLE appointments ADD COLUMN cancel_reason VARCHAR'),
        ]

        with bind.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_doctor_start ON appointments(doctor_id, start_time)')
            )
            if bind.dialect.name == 'postgresql':
                _ensure_overlap_constraint(connection)

        _checked_schemas.add(schema_key)


def _ensure_overlap_constraint(connection) -> None:
    """Install the per-doctor no-overlap exclusion constraint on PostgreSQL.

    Active appointments of one doctor may not share any instant of their
    half-open ``[start_time, end_time)`` ranges. Cancelled rows are exempt.
    """
    exists = connection.execute(
        text('SELECT 1 FROM pg_constraint WHERE conname = :name'),
        {'name': APPOINTMENT_OVERLAP_CONSTRAINT},
    ).first()
    if exists:
        return

    connection.execute(text('CREATE EXTENSION IF NOT EXISTS btree_gist'))
    connection.execute(
        text(
            f'ALTER TABLE appointments ADD CONSTRAINT {APPOINTMENT_OVERLAP_CONSTRAINT} '
            "EXCLUDE USING gist (doctor_id WITH =, tsrange(start_time, end_time, '[)') WITH &&) "
            "WHERE (status <> 'CANCELLED')"
        )
    )
    logger.info('Installed %s exclusion constraint', APPOINTMENT_OVERLAP_CONSTRAINT)
