"""API schemas."""
from courtbook.schemas.facility import (
    Sport,
    Court,
    PricingConfig,
    HoursWindow,
    OperatingHours,
    Branding,
    FacilityConfig,
)
from courtbook.schemas.pricing import PricingBreakdown
from courtbook.schemas.availability import (
    AvailabilityGrid,
    SlotStatus,
    TimeSlot,
    AvailabilityResponse,
    CourtSlotStatus,
    SlotRow,
    AvailabilityView,
    CourtTile,
)
from courtbook.schemas.booking import (
    BookingStep,
    CustomerDetails,
    BookingPayload,
    BillingDetails,
    BookingReceipt,
    SessionState,
)
from courtbook.schemas.cancellation import CancellationDetails

__all__ = [
    "Sport",
    "Court",
    "PricingConfig",
    "HoursWindow",
    "OperatingHours",
    "Branding",
    "FacilityConfig",
    "PricingBreakdown",
    "AvailabilityGrid",
    "SlotStatus",
    "TimeSlot",
    "AvailabilityResponse",
    "CourtSlotStatus",
    "SlotRow",
    "AvailabilityView",
    "CourtTile",
    "BookingStep",
    "CustomerDetails",
    "BookingPayload",
    "BillingDetails",
    "BookingReceipt",
    "SessionState",
    "CancellationDetails",
]
