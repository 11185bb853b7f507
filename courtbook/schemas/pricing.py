"""Pricing schemas."""
from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class PricingBreakdown(BaseModel):
    """Itemised price for one booking, each amount already rounded."""

    model_config = ConfigDict(frozen=True)

    court_rental: Decimal
    service_fee: Decimal
    discount_amount: Decimal = Decimal("0.00")
    subtotal: Decimal
    tax: Decimal
    final_total: Decimal

    service_fee_percentage: Decimal
    tax_percentage: Decimal
    currency: str = "cad"
