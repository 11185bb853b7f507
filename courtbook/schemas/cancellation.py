"""Cancellation schemas."""
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, AliasChoices


class CancellationDetails(BaseModel):
    """What the backend says about cancelling a booking."""

    model_config = ConfigDict(populate_by_name=True)

    booking: Dict[str, Any] = {}
    can_cancel: bool = Field(
        default=False, validation_alias=AliasChoices("can_cancel", "canCancel")
    )
    hours_until_booking: float = Field(
        default=0, validation_alias=AliasChoices("hours_until_booking", "hoursUntilBooking")
    )
