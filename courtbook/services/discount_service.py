"""Discount code reconciliation.

A booking may carry at most one discount code. Once the backend has
accepted a code the reconciler locks, and any further attempt is refused
here without contacting the backend, which may not treat repeated
applications of the same code idempotently.
"""
import logging
from decimal import Decimal
from typing import Optional

from courtbook.core.exceptions import (
    DiscountAlreadyAppliedError,
    DiscountError,
    NetworkError,
)
from courtbook.schemas.facility import FacilityConfig
from courtbook.schemas.pricing import PricingBreakdown
from courtbook.services import pricing
from courtbook.services.booking_api_client import BookingApiClient

logger = logging.getLogger(__name__)


class DiscountReconciler:
    """Applies a single discount code to a booking's price."""

    def __init__(self, facility: FacilityConfig, client: BookingApiClient):
        self.facility = facility
        self.client = client
        self.applied_code: Optional[str] = None
        self.applying = False

    @property
    def locked(self) -> bool:
        return self.applied_code is not None

    async def apply(self, code: str, base_rental: Decimal) -> PricingBreakdown:
        """
        Validate a code with the backend and re-price the booking.

        Args:
            code: Code as typed by the customer
            base_rental: Current court rental amount

        Returns:
            New breakdown including the discount

        Raises:
            DiscountAlreadyAppliedError: a code was already accepted
            DiscountError: the code is empty, rejected or the call failed
        """
        if self.locked:
            raise DiscountAlreadyAppliedError()

        code = (code or "").strip()
        if not code:
            raise DiscountError("Please enter a discount code")

        if self.applying:
            raise DiscountError("A discount code is already being checked")

        self.applying = True
        try:
            amount = await self.client.apply_discount(self.facility.slug, code, base_rental)
        except NetworkError as e:
            logger.warning(f"Discount {code!r} rejected for {self.facility.slug}: {e}")
            raise DiscountError(e.message if e.message != NetworkError.default_message else None) from e
        finally:
            self.applying = False

        if amount <= 0:
            logger.warning(f"Discount {code!r} returned non-positive amount {amount}")
            raise DiscountError()

        breakdown = pricing.assert_consistent(
            pricing.price(self.facility.pricing, discount_amount=amount)
        )
        self.applied_code = code
        logger.info(f"Applied discount {code!r} ({breakdown.discount_amount}) at {self.facility.slug}")
        return breakdown

    def reset(self):
        """Forget the applied code, e.g. when a new slot is picked."""
        self.applied_code = None

