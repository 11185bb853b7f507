"""Facility schemas."""
import re
from decimal import Decimal
from enum import Enum
from typing import Optional, List, Dict

from pydantic import BaseModel, ConfigDict, Field, AliasChoices, field_validator

_HHMM = re.compile(r"^([01]?\d|2[0-4]):[0-5]\d$")


class Sport(str, Enum):
    """Sports a court can be booked for."""

    BADMINTON = "Badminton"
    PICKLEBALL = "Pickleball"
    CRICKET = "Cricket"


class Court(BaseModel):
    """A bookable court. ``id`` is the backend's court number."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    sport: Sport = Sport.BADMINTON


class PricingConfig(BaseModel):
    """Per-facility pricing. Rental may be missing on a malformed config."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    court_rental: Optional[Decimal] = Field(
        default=None,
        validation_alias=AliasChoices("court_rental", "courtRental", "pricePerHour"),
    )
    service_fee_percentage: Decimal = Field(
        default=Decimal("1.0"),
        validation_alias=AliasChoices("service_fee_percentage", "serviceFeePercentage"),
    )
    tax_percentage: Decimal = Field(
        default=Decimal("13.0"),
        validation_alias=AliasChoices("tax_percentage", "taxPercentage"),
    )
    currency: str = "cad"


class HoursWindow(BaseModel):
    """Opening window as ``HH:MM`` strings, end exclusive."""

    model_config = ConfigDict(frozen=True)

    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def check_format(cls, value: str) -> str:
        if not _HHMM.match(value):
            raise ValueError(f"expected HH:MM, got {value!r}")
        return value

    @property
    def start_hour(self) -> int:
        return int(self.start.split(":")[0])

    @property
    def end_hour(self) -> int:
        return int(self.end.split(":")[0])


class OperatingHours(BaseModel):
    """Weekday and weekend opening windows."""

    model_config = ConfigDict(frozen=True)

    weekday: Optional[HoursWindow] = None
    weekend: Optional[HoursWindow] = None


class Branding(BaseModel):
    """Facility colours."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    primary_color: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("primary_color", "primaryColor")
    )
    secondary_color: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("secondary_color", "secondaryColor")
    )


class FacilityConfig(BaseModel):
    """Immutable snapshot of one tenant's configuration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(validation_alias=AliasChoices("id", "_id", "venueId"))
    slug: str
    name: str
    courts: List[Court] = []
    pricing: Optional[PricingConfig] = None
    operating_hours: Optional[OperatingHours] = Field(
        default=None,
        validation_alias=AliasChoices("operating_hours", "operatingHours", "businessHours"),
    )
    branding: Optional[Branding] = None
    timezone: Optional[str] = None
    layout_columns: Dict[Sport, int] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("layout_columns", "layoutColumns"),
    )

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value):
        return str(value)

    def get_court(self, court_id: int) -> Optional[Court]:
        """Look up a court by its number."""
        for court in self.courts:
            if court.id == court_id:
                return court
        return None
