"""Errors raised by the scheduling services.

Each error carries the HTTP status code the API layer answers with, so the
services never import FastAPI.
"""


class SchedulingError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SchedulingError):
    """Missing or malformed input, or a business rule the request breaks."""
    status_code = 400


class NotFoundError(SchedulingError):
    status_code = 404


class ConflictError(SchedulingError):
    """The requested interval overlaps an active appointment of the doctor."""
    status_code = 409


class StoreError(SchedulingError):
    """The database failed underneath an operation."""
    status_code = 500
