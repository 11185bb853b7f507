"""Translate booking core errors into HTTP errors."""
from fastapi import HTTPException

from courtbook.core.exceptions import (
    ConfigError,
    ConflictError,
    CourtBookError,
    InvalidTransitionError,
    NetworkError,
    NotFoundError,
    SubmissionInProgressError,
    ValidationError,
)

STATUS_CODES = [
    (NotFoundError, 404),
    (ConflictError, 409),
    (NetworkError, 502),
    (ValidationError, 400),
    (InvalidTransitionError, 409),
    (SubmissionInProgressError, 409),
    (ConfigError, 500),
]


def http_error(error: CourtBookError) -> HTTPException:
    """Pick the status code for the most specific matching error class."""
    for error_class, status_code in STATUS_CODES:
        if isinstance(error, error_class):
            break
    else:
        status_code = 500

    detail = {"message": error.message}
    fields = getattr(error, "fields", None)
    if fields:
        detail["fields"] = fields
    return HTTPException(status_code=status_code, detail=detail)
