"""Availability schemas."""
from datetime import date as date_type, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, List, Dict

from pydantic import BaseModel, ConfigDict

from courtbook.schemas.facility import Sport

# court id -> {"HH:MM": bookable}
AvailabilityGrid = Dict[int, Dict[str, bool]]


class SlotStatus(str, Enum):
    """Display status of one court/time cell."""

    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    PAST = "past"


class TimeSlot(BaseModel):
    """A whole-hour slot on the selected date."""

    model_config = ConfigDict(frozen=True)

    label: str  # 12-hour, e.g. "9:00 AM"
    time24: str  # "09:00"
    duration_minutes: int = 60
    is_past: bool = False


class AvailabilityResponse(BaseModel):
    """Backend availability snapshot for one facility and date."""

    availability: AvailabilityGrid
    date: Optional[date_type] = None


class CourtSlotStatus(BaseModel):
    """Status of one court at one time."""

    court_id: int
    court_name: str
    sport: Sport
    status: SlotStatus


class SlotRow(BaseModel):
    """One time row of the grid view."""

    slot: TimeSlot
    courts: List[CourtSlotStatus]
    fully_booked: bool


class AvailabilityView(BaseModel):
    """Rendered grid for a facility and date."""

    facility_slug: str
    date: date_type
    rows: List[SlotRow]
    available_count: int
    last_refreshed: Optional[datetime] = None
    error: Optional[str] = None


class CourtTile(BaseModel):
    """Position and status of a court in the layout view."""

    court_id: int
    court_name: str
    sport: Sport
    row: int
    column: int
    status: SlotStatus
    display_price: Decimal
