"""Booking session state machine.

One session is one customer's attempt to book a slot:

    SLOT_SELECT -> DETAILS -> PAYMENT -> DONE

Two calls have side effects on the backend and are sequenced here:
creating the booking (DETAILS -> PAYMENT) and confirming the payment
(PAYMENT -> DONE). A created booking is never rolled back from this side;
if payment does not complete, reconciling the unpaid booking is left to
the backend.

Every method that fails records a message in ``errors`` under the field
it belongs to and then raises, so callers can either render the error map
or handle the exception.
"""
import logging
import re
import uuid
from datetime import date
from enum import Enum
from typing import Dict, Optional

from courtbook.core.exceptions import (
    ConfigError,
    DiscountAlreadyAppliedError,
    DiscountError,
    InvalidTransitionError,
    NetworkError,
    SlotUnavailableError,
    SubmissionInProgressError,
    ValidationError,
)
from courtbook.schemas.availability import TimeSlot
from courtbook.schemas.booking import (
    BillingDetails,
    BookingPayload,
    BookingReceipt,
    BookingStep,
    CustomerDetails,
    SessionState,
)
from courtbook.schemas.facility import Court, FacilityConfig
from courtbook.schemas.pricing import PricingBreakdown
from courtbook.services import pricing
from courtbook.services.availability_service import AvailabilityResolver, Clock, add_minutes
from courtbook.services.booking_api_client import BookingApiClient
from courtbook.services.discount_service import DiscountReconciler
from courtbook.services.events import BookingEvent, EventChannel

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")
POSTAL_CODE_PATTERN = re.compile(
    r"^[ABCEGHJ-NPRSTVXY]\d[ABCEGHJ-NPRSTV-Z] ?\d[ABCEGHJ-NPRSTV-Z]\d$", re.IGNORECASE
)

PAST_SLOT_MESSAGE = "Cannot book time slots in the past. Please select a future time slot."
UNAVAILABLE_SLOT_MESSAGE = "This time slot is not available. Please select another time."
PAYMENT_INIT_MESSAGE = "Failed to initialize payment. Please try again."
PAYMENT_FAILED_MESSAGE = "Payment processing failed. Please try again."
INVALID_AMOUNT_MESSAGE = "Unable to calculate payment amount. Please go back and try again."


class ViewMode(str, Enum):
    """How slot selection is displayed."""

    GRID = "grid"
    LAYOUT = "layout"


def format_postal_code(value: str) -> str:
    """'k1a0a9' -> 'K1A 0A9'."""
    cleaned = re.sub(r"[^A-Za-z0-9]", "", value or "").upper()
    if len(cleaned) > 3:
        return f"{cleaned[:3]} {cleaned[3:6]}"
    return cleaned


def validate_postal_code(value: str) -> bool:
    """Canadian postal code check."""
    return bool(POSTAL_CODE_PATTERN.match(value or ""))


class BookingSession:
    """A single customer's booking attempt at one facility."""

    def __init__(
        self,
        facility: FacilityConfig,
        client: BookingApiClient,
        clock: Optional[Clock] = None,
        events: Optional[EventChannel] = None,
        session_id: Optional[str] = None,
        selected_date: Optional[date] = None,
    ):
        self.session_id = session_id or uuid.uuid4().hex
        self.client = client
        self.clock = clock
        self.events = events or EventChannel()
        self.view_mode = ViewMode.GRID
        self.resolver: Optional[AvailabilityResolver] = None
        self._bind(facility, selected_date)

    # Setup

    def _bind(self, facility: FacilityConfig, selected_date: Optional[date] = None):
        """Attach the session to a facility, dropping anything from a previous one."""
        if self.resolver is not None:
            self.resolver.close()
        self.facility = facility
        self.resolver = AvailabilityResolver(
            facility, self.client, self.events, self.clock, selected_date
        )
        self.discounts = DiscountReconciler(facility, self.client)
        self._clear()

    def _clear(self):
        self.step = BookingStep.SLOT_SELECT
        self.selected_court: Optional[Court] = None
        self.selected_slot: Optional[TimeSlot] = None
        self.details = CustomerDetails()
        self.booking_id: Optional[str] = None
        self._clear_payment()
        self.errors: Dict[str, str] = {}
        self.loading = False
        self._receipt: Optional[BookingReceipt] = None
        self.discounts.reset()
        self.pricing = self._default_pricing()

    def _clear_payment(self):
        self.client_secret: Optional[str] = None
        self.payment_intent_id: Optional[str] = None
        self.payment_succeeded = False

    def _default_pricing(self) -> Optional[PricingBreakdown]:
        try:
            return pricing.assert_consistent(pricing.price(self.facility.pricing))
        except ConfigError as e:
            logger.error(f"Cannot price bookings at {self.facility.slug}: {e}")
            self.errors["config"] = e.message
            return None

    def _set_pricing(self, breakdown: PricingBreakdown):
        self.pricing = pricing.assert_consistent(breakdown)

    def _require_step(self, *steps: BookingStep):
        if self.step not in steps:
            raise InvalidTransitionError(
                f"Not allowed at step {self.step.name}"
            )

    @property
    def selected_date(self) -> date:
        return self.resolver.selected_date

    # Step 1: slot selection

    async def load(self) -> bool:
        """Fetch availability for the selected date."""
        return await self.resolver.load()

    async def select_date(self, day: date) -> bool:
        """Show another date. Selection state is untouched."""
        self._require_step(BookingStep.SLOT_SELECT)
        return await self.resolver.set_date(day)

    async def refresh(self):
        """Ask every listener on this session to re-fetch availability."""
        await self.events.publish(BookingEvent.REFRESH_REQUESTED)

    def set_view_mode(self, mode: ViewMode):
        """Switch grid/layout rendering; has no effect on booking state."""
        self.view_mode = ViewMode(mode)

    def select_slot(self, court_id: int, time_value: str) -> PricingBreakdown:
        """
        Pick a court and start time on the selected date.

        Args:
            court_id: Court number
            time_value: Slot start in 12-hour or 24-hour form

        Returns:
            Fresh pricing breakdown for the slot

        Raises:
            SlotUnavailableError: past, unbookable or unknown slot
            ConfigError: the facility cannot be priced
        """
        self._require_step(BookingStep.SLOT_SELECT)

        court = self.facility.get_court(court_id)
        slot = self.resolver.find_slot(time_value)
        if court is None or slot is None:
            self.errors["slot"] = UNAVAILABLE_SLOT_MESSAGE
            raise SlotUnavailableError(UNAVAILABLE_SLOT_MESSAGE)

        if slot.is_past:
            self.errors["slot"] = PAST_SLOT_MESSAGE
            raise SlotUnavailableError(PAST_SLOT_MESSAGE)

        if not self.resolver.is_available(court.id, slot.time24):
            self.errors["slot"] = UNAVAILABLE_SLOT_MESSAGE
            raise SlotUnavailableError(UNAVAILABLE_SLOT_MESSAGE)

        try:
            breakdown = pricing.price(self.facility.pricing)
        except ConfigError as e:
            self.errors["config"] = e.message
            raise

        self._set_pricing(breakdown)
        self.discounts.reset()
        self.details = self.details.model_copy(update={"discount_code": ""})
        self.selected_court = court
        self.selected_slot = slot
        self.booking_id = None
        self._clear_payment()
        self.errors.pop("slot", None)
        self.errors.pop("config", None)
        self.step = BookingStep.DETAILS

        logger.info(
            f"Session {self.session_id}: selected {court.name} on {self.selected_date} at {slot.label}"
        )
        return self.pricing

    # Step 2: details

    def update_details(self, **fields: str) -> CustomerDetails:
        """Change customer fields; clears any error recorded for them."""
        self._require_step(BookingStep.DETAILS)
        if self.loading:
            raise SubmissionInProgressError()
        if self.booking_id is not None:
            raise InvalidTransitionError("Booking already created; customer details can no longer change")

        unknown = set(fields) - set(CustomerDetails.model_fields)
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

        new_code = fields.get("discount_code")
        if new_code is not None and self.discounts.locked and new_code != self.details.discount_code:
            self.errors["discount"] = DiscountAlreadyAppliedError.default_message
            raise DiscountAlreadyAppliedError()

        self.details = self.details.model_copy(update=fields)
        for name in fields:
            self.errors.pop(name, None)
        return self.details

    async def apply_discount(self, code: Optional[str] = None) -> PricingBreakdown:
        """Apply a discount code (defaults to the one in the details)."""
        self._require_step(BookingStep.DETAILS)
        if self.loading:
            raise SubmissionInProgressError()
        if self.booking_id is not None:
            raise InvalidTransitionError("Booking already created; the price can no longer change")
        if code is None:
            code = self.details.discount_code

        try:
            breakdown = await self.discounts.apply(code, self.pricing.court_rental)
        except DiscountError as e:
            self.errors["discount"] = e.message
            raise

        self._set_pricing(breakdown)
        self.details = self.details.model_copy(update={"discount_code": self.discounts.applied_code})
        self.errors.pop("discount", None)
        return self.pricing

    def validate_details(self) -> Dict[str, str]:
        """Local checks on the customer fields. Returns errors by field."""
        found = {}
        if not self.details.customer_name.strip():
            found["customer_name"] = "Name is required"

        email = self.details.customer_email.strip()
        if not email:
            found["customer_email"] = "Email is required"
        elif not EMAIL_PATTERN.match(email):
            found["customer_email"] = "Email is invalid"

        for field in ("customer_name", "customer_email"):
            self.errors.pop(field, None)
        self.errors.update(found)
        return found

    def build_payload(self) -> BookingPayload:
        """Assemble the create-booking body from the current session."""
        start_time = self.selected_slot.time24
        duration = self.selected_slot.duration_minutes
        return BookingPayload(
            facility_id=self.facility.id,
            court_number=self.selected_court.id,
            booking_date=self.selected_date,
            start_time=start_time,
            end_time=add_minutes(start_time, duration),
            duration=duration,
            total_amount=self.pricing.final_total,
            discount_code=self.discounts.applied_code,
            discount_amount=self.pricing.discount_amount,
            customer_name=self.details.customer_name.strip(),
            customer_email=self.details.customer_email.strip(),
            customer_phone=self.details.customer_phone.strip() or None,
            user_id=self.details.user_id.strip() or None,
        )

    async def submit_details(self) -> str:
        """
        Validate the details and create the booking.

        Returns:
            Server-assigned booking id

        Raises:
            ValidationError: required fields missing or malformed
            SubmissionInProgressError: a submission is already in flight
            NetworkError: the backend refused or could not be reached
        """
        self._require_step(BookingStep.DETAILS)
        if self.loading or self.discounts.applying:
            raise SubmissionInProgressError()

        found = self.validate_details()
        if found:
            raise ValidationError("Please correct the highlighted fields", fields=found)

        if self.pricing is None:
            raise ConfigError(self.errors.get("config"))

        if self.booking_id is not None:
            # Came back from payment; the booking already exists.
            logger.info(f"Session {self.session_id}: reusing booking {self.booking_id}")
            self.step = BookingStep.PAYMENT
            return self.booking_id

        payload = self.build_payload()
        self.loading = True
        self.errors.pop("submit", None)
        try:
            booking_id = await self.client.create_booking(self.facility.slug, payload)
        except NetworkError as e:
            logger.warning(f"Session {self.session_id}: booking creation failed: {e}")
            self.errors["submit"] = e.message
            raise
        finally:
            self.loading = False

        self.booking_id = booking_id
        self.step = BookingStep.PAYMENT
        logger.info(f"Session {self.session_id}: created booking {booking_id}, moving to payment")
        return booking_id

    # Step 3: payment

    async def start_payment(self) -> str:
        """
        Request a payment intent for the final total.

        Returns:
            Client secret for the payment collaborator
        """
        self._require_step(BookingStep.PAYMENT)
        if self.payment_succeeded or self.client_secret:
            return self.client_secret
        if self.loading:
            raise SubmissionInProgressError()

        amount = pricing.to_minor_units(self.pricing.final_total)
        if amount <= 0:
            self.errors["payment"] = INVALID_AMOUNT_MESSAGE
            raise ValidationError(INVALID_AMOUNT_MESSAGE)

        self.loading = True
        try:
            self.client_secret = await self.client.create_payment_intent(amount, self.pricing.currency)
        except NetworkError as e:
            logger.error(f"Session {self.session_id}: failed to create payment intent: {e}")
            self.errors["payment"] = PAYMENT_INIT_MESSAGE
            raise NetworkError(PAYMENT_INIT_MESSAGE, status_code=e.status_code) from e
        finally:
            self.loading = False

        self.errors.pop("payment", None)
        return self.client_secret

    def validate_billing(self, billing: BillingDetails) -> BillingDetails:
        """Check card billing details before the card is charged."""
        self._require_step(BookingStep.PAYMENT)
        postal_code = format_postal_code(billing.postal_code)

        if not postal_code:
            message = "Card billing postal code is required"
        elif not validate_postal_code(postal_code):
            message = "Please enter a valid Canadian postal code (e.g., K1A 0A9)"
        else:
            self.errors.pop("postal_code", None)
            return billing.model_copy(update={"postal_code": postal_code})

        self.errors["postal_code"] = message
        raise ValidationError(message, fields={"postal_code": message})

    def payment_failed(self, message: Optional[str] = None):
        """The payment collaborator could not charge the card."""
        self._require_step(BookingStep.PAYMENT)
        self.errors["payment"] = message or PAYMENT_FAILED_MESSAGE
        logger.warning(f"Session {self.session_id}: payment failed: {self.errors['payment']}")

    async def complete_payment(self, payment_intent_id: str) -> BookingReceipt:
        """
        Record a successful charge and confirm it with the backend.

        Safe to call again with the same intent if confirmation failed.

        Raises:
            NetworkError: confirmation failed; the session stays at PAYMENT
        """
        self._require_step(BookingStep.PAYMENT)
        if self.loading:
            raise SubmissionInProgressError()

        self.payment_succeeded = True
        self.payment_intent_id = payment_intent_id
        self.loading = True
        try:
            await self.client.confirm_payment(self.booking_id, payment_intent_id)
        except NetworkError as e:
            logger.warning(
                f"Session {self.session_id}: payment {payment_intent_id} received but "
                f"confirmation for booking {self.booking_id} failed: {e}"
            )
            self.errors["payment"] = (
                f"Payment received but confirmation failed. Please retry or contact "
                f"support with payment ID: {payment_intent_id}"
            )
            raise
        finally:
            self.loading = False

        self.errors.pop("payment", None)
        self.step = BookingStep.DONE
        self._receipt = self._build_receipt()
        logger.info(f"Session {self.session_id}: booking {self.booking_id} confirmed")

        await self.events.publish(
            BookingEvent.BOOKING_CREATED,
            booking_id=self.booking_id,
            facility_slug=self.facility.slug,
        )
        return self._receipt

    # Done

    def _build_receipt(self) -> BookingReceipt:
        return BookingReceipt(
            booking_id=self.booking_id,
            facility_name=self.facility.name,
            court=self.selected_court,
            date=self.selected_date,
            slot=self.selected_slot,
            customer_name=self.details.customer_name.strip(),
            customer_email=self.details.customer_email.strip(),
            pricing=self.pricing,
        )

    def receipt(self) -> BookingReceipt:
        self._require_step(BookingStep.DONE)
        return self._receipt

    # Navigation

    def back(self) -> BookingStep:
        """DETAILS -> SLOT_SELECT, PAYMENT -> DETAILS."""
        if self.step == BookingStep.DETAILS:
            self.step = BookingStep.SLOT_SELECT
        elif self.step == BookingStep.PAYMENT:
            if self.payment_succeeded:
                raise InvalidTransitionError("Payment already received")
            self.step = BookingStep.DETAILS
        else:
            raise InvalidTransitionError(f"Cannot go back from {self.step.name}")
        return self.step

    def reset(self):
        """Start over at slot selection with default pricing."""
        logger.info(f"Session {self.session_id}: reset from {self.step.name}")
        self._clear()

    async def switch_facility(self, facility: FacilityConfig):
        """Rebind to another tenant. Everything from the old one is dropped."""
        logger.info(f"Session {self.session_id}: switching {self.facility.slug} -> {facility.slug}")
        self._bind(facility)
        await self.resolver.load()

    def close(self):
        if self.resolver is not None:
            self.resolver.close()

    def state(self) -> SessionState:
        """Snapshot for presentation components."""
        return SessionState(
            session_id=self.session_id,
            facility_slug=self.facility.slug,
            step=self.step,
            view_mode=self.view_mode.value,
            selected_date=self.selected_date,
            selected_court=self.selected_court,
            selected_slot=self.selected_slot,
            details=self.details,
            pricing=self.pricing,
            discount_applied=self.discounts.locked,
            booking_id=self.booking_id,
            client_secret=self.client_secret,
            payment_succeeded=self.payment_succeeded,
            loading=self.loading,
            errors=dict(self.errors),
            receipt=self._receipt,
        )
