from sqlalchemy.exc import SQLAlchemyError

from appointment_backend.database import ensure_appointment_schema, ensure_availability_schema, get_db
from appointment_backend.errors import StoreError
from appointment_backend.store import STORE_UNAVAILABLE_MESSAGE

__all__ = ['ensure_database_ready', 'get_db']


def ensure_database_ready() -> None:
    try:
        ensure_availability_schema()
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise StoreError(STORE_UNAVAILABLE_MESSAGE) from exc
