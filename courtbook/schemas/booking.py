"""Booking schemas."""
from datetime import date as date_type
from decimal import Decimal
from enum import IntEnum
from typing import Optional, Dict

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from courtbook.schemas.availability import TimeSlot
from courtbook.schemas.facility import Court
from courtbook.schemas.pricing import PricingBreakdown


class BookingStep(IntEnum):
    """Steps of the booking flow."""

    SLOT_SELECT = 1
    DETAILS = 2
    PAYMENT = 3
    DONE = 4


class CustomerDetails(BaseModel):
    """Fields entered at the details step."""

    customer_name: str = ""
    customer_email: str = ""
    customer_phone: str = ""
    user_id: str = ""
    discount_code: str = ""


class BookingPayload(BaseModel):
    """Body sent to the create-booking endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    facility_id: str = Field(alias="facilityId")
    court_number: int = Field(alias="courtNumber")
    booking_date: date_type = Field(alias="bookingDate")
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    duration: int = 60
    total_amount: Decimal = Field(alias="totalAmount")
    discount_code: Optional[str] = Field(default=None, alias="discountCode")
    discount_amount: Decimal = Field(default=Decimal("0.00"), alias="discountAmount")
    customer_name: str = Field(alias="customerName")
    customer_email: str = Field(alias="customerEmail")
    customer_phone: Optional[str] = Field(default=None, alias="customerPhone")
    user_id: Optional[str] = Field(default=None, alias="userId")
    source: str = "web"

    @field_serializer("total_amount", "discount_amount")
    def serialize_money(self, value: Decimal) -> float:
        return float(value)

    def to_wire(self) -> dict:
        """JSON-ready dict with the backend's field names."""
        return self.model_dump(mode="json", by_alias=True)


class BillingDetails(BaseModel):
    """Card billing details collected before the card is charged."""

    name: str = ""
    email: str = ""
    phone: str = ""
    postal_code: str = ""
    country: str = "CA"


class BookingReceipt(BaseModel):
    """Frozen summary shown once the booking is paid."""

    model_config = ConfigDict(frozen=True)

    booking_id: str
    facility_name: str
    court: Court
    date: date_type
    slot: TimeSlot
    customer_name: str
    customer_email: str
    pricing: PricingBreakdown


class SessionState(BaseModel):
    """Snapshot of a booking session for presentation components."""

    session_id: str
    facility_slug: str
    step: BookingStep
    view_mode: str
    selected_date: date_type
    selected_court: Optional[Court] = None
    selected_slot: Optional[TimeSlot] = None
    details: CustomerDetails
    pricing: Optional[PricingBreakdown] = None
    discount_applied: bool = False
    booking_id: Optional[str] = None
    client_secret: Optional[str] = None
    payment_succeeded: bool = False
    loading: bool = False
    errors: Dict[str, str] = {}
    receipt: Optional[BookingReceipt] = None
