"""Pricing engine.

Turns a facility's pricing config into an itemised breakdown:

    rental -> service fee -> discount -> subtotal -> tax -> total

Every stage is rounded to cents (half-up) when it is computed, and later
stages are computed from the rounded earlier ones, so the numbers on the
summary, the receipt and the backend all agree. The service fee is the
exception: it is taken from the unrounded rental.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional, Union

from courtbook.core.config import settings
from courtbook.core.exceptions import ConfigError, PricingDriftError
from courtbook.schemas.facility import PricingConfig, Sport
from courtbook.schemas.pricing import PricingBreakdown

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
TOLERANCE = Decimal("0.01")
HUNDRED = Decimal("100")

SPORT_DISPLAY_PRICES = {
    Sport.BADMINTON: Decimal("25.00"),
    Sport.PICKLEBALL: Decimal("30.00"),
    Sport.CRICKET: Decimal("45.00"),
}


def to_decimal(value: Number) -> Decimal:
    """Convert via ``str`` so floats like 0.1 keep their printed value."""
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ConfigError(f"Not a number: {value!r}") from e


def round_money(value: Number) -> Decimal:
    """Round to two decimals, half-up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Number) -> int:
    """Money amount to integer cents."""
    return int((to_decimal(amount) * HUNDRED).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def sport_display_price(sport: Sport) -> Decimal:
    """Base hourly price shown before a slot is picked."""
    return SPORT_DISPLAY_PRICES[sport]


def _check_config(pricing: Optional[PricingConfig]) -> PricingConfig:
    if pricing is None:
        raise ConfigError("Facility pricing is not configured")
    if pricing.court_rental is None or pricing.court_rental <= 0:
        raise ConfigError(f"Invalid court rental rate: {pricing.court_rental}")
    if pricing.service_fee_percentage < 0 or pricing.tax_percentage < 0:
        raise ConfigError("Fee and tax percentages must not be negative")
    return pricing


def price(
    pricing: Optional[PricingConfig],
    duration_minutes: Optional[int] = None,
    discount_amount: Number = 0,
) -> PricingBreakdown:
    """
    Compute the breakdown for one booking.

    Args:
        pricing: Facility pricing config
        duration_minutes: Booking length, defaults to the slot duration
        discount_amount: Concrete discount in currency units

    Returns:
        Rounded breakdown

    Raises:
        ConfigError: if the pricing config is missing or unusable
    """
    pricing = _check_config(pricing)
    if duration_minutes is None:
        duration_minutes = settings.SLOT_DURATION_MINUTES

    raw_rental = pricing.court_rental * Decimal(duration_minutes) / Decimal(60)
    rental = round_money(raw_rental)
    service_fee = round_money(raw_rental * pricing.service_fee_percentage / HUNDRED)

    # A discount can never push the subtotal below zero.
    discount = round_money(discount_amount)
    discount = min(max(discount, Decimal("0.00")), rental + service_fee)

    subtotal = round_money(rental + service_fee - discount)
    tax = round_money(subtotal * pricing.tax_percentage / HUNDRED)
    final_total = round_money(subtotal + tax)

    return PricingBreakdown(
        court_rental=rental,
        service_fee=service_fee,
        discount_amount=discount,
        subtotal=subtotal,
        tax=tax,
        final_total=final_total,
        service_fee_percentage=pricing.service_fee_percentage,
        tax_percentage=pricing.tax_percentage,
        currency=pricing.currency,
    )


def validate(breakdown: PricingBreakdown) -> bool:
    """Check each stage of a breakdown against its inputs, within a cent."""
    expected_subtotal = breakdown.court_rental + breakdown.service_fee - breakdown.discount_amount
    if abs(expected_subtotal - breakdown.subtotal) > TOLERANCE:
        return False

    expected_fee = breakdown.court_rental * breakdown.service_fee_percentage / HUNDRED
    if abs(expected_fee - breakdown.service_fee) > TOLERANCE:
        return False

    expected_tax = breakdown.subtotal * breakdown.tax_percentage / HUNDRED
    if abs(expected_tax - breakdown.tax) > TOLERANCE:
        return False

    expected_total = breakdown.subtotal + breakdown.tax
    return abs(expected_total - breakdown.final_total) <= TOLERANCE


def assert_consistent(breakdown: PricingBreakdown) -> PricingBreakdown:
    """Raise ``PricingDriftError`` unless the breakdown validates."""
    if not validate(breakdown):
        raise PricingDriftError(f"Inconsistent breakdown: {breakdown.model_dump()}")
    return breakdown
