"""Booking core exceptions.

Local checks raise ``ValidationError`` subclasses and never reach the
network. Anything coming back from the booking backend is a
``NetworkError`` (or one of its subclasses) and is always recoverable
from the caller's point of view.
"""
from typing import Dict, Optional


class CourtBookError(Exception):
    """Base class for all booking core errors."""

    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(CourtBookError):
    """Local form or input check failed."""

    default_message = "Invalid input"

    def __init__(self, message: Optional[str] = None, fields: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.fields = fields or {}


class SlotUnavailableError(ValidationError):
    """The picked slot is in the past or not bookable."""

    default_message = "This time slot is not available. Please select another time."


class DiscountError(ValidationError):
    """A discount code was rejected."""

    default_message = "Invalid discount code"


class DiscountAlreadyAppliedError(DiscountError):
    """A second code was offered after one succeeded."""

    default_message = "A discount code has already been applied"


class InvalidTransitionError(CourtBookError):
    """The requested action is not allowed at the current step."""

    default_message = "Action not allowed at this step"


class SubmissionInProgressError(CourtBookError):
    """A request for the same action is already in flight."""

    default_message = "A request is already in progress"


class ConfigError(CourtBookError):
    """Facility configuration is missing or malformed."""

    default_message = "Facility pricing is not configured"


class PricingDriftError(ConfigError):
    """A breakdown no longer satisfies its own arithmetic."""

    default_message = "Pricing breakdown is inconsistent"


class NetworkError(CourtBookError):
    """Transport failure or non-success response from the backend."""

    default_message = "Network request failed"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ConflictError(NetworkError):
    """The backend rejected a booking because the slot was taken."""

    default_message = "This time slot is no longer available"


class NotFoundError(NetworkError):
    """The backend does not know the requested resource."""

    default_message = "Not found"


class FacilityNotFoundError(NotFoundError):
    """Unknown facility slug."""

    default_message = "Facility not found"
