"""Booking backend API client.

This module handles all interactions with the booking backend. Every
tenant-scoped call takes the facility slug explicitly; the client holds
no per-tenant state.

Only GET requests are retried. Creating a booking, applying a discount or
confirming a payment is never repeated automatically because the backend
does not guarantee those calls are idempotent.
"""
import asyncio
import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Any, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from courtbook.core.config import settings
from courtbook.core.exceptions import (
    ConfigError,
    ConflictError,
    FacilityNotFoundError,
    NetworkError,
    NotFoundError,
)
from courtbook.schemas.availability import AvailabilityResponse
from courtbook.schemas.booking import BookingPayload
from courtbook.schemas.cancellation import CancellationDetails
from courtbook.schemas.facility import FacilityConfig

logger = logging.getLogger(__name__)


def _unwrap(data: Dict[str, Any]) -> Dict[str, Any]:
    """Backend responses are either bare or wrapped in ``{"data": ...}``."""
    inner = data.get("data") if isinstance(data, dict) else None
    return inner if isinstance(inner, dict) else data


class BookingApiClient:
    """Client for the booking backend's public API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client. ``transport`` is mainly for tests."""
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT_SECONDS
        self.max_retries = max(1, max_retries if max_retries is not None else settings.MAX_RETRIES)
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
            headers={"Content-Type": "application/json"},
        )

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Make an HTTP request, retrying GETs on transport failures.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: Path relative to the base URL
            params: Query parameters
            json_data: JSON body data

        Returns:
            Response JSON data

        Raises:
            NotFoundError: on HTTP 404
            ConflictError: on HTTP 409
            NetworkError: on any other failure
        """
        attempts = self.max_retries if method == "GET" else 1

        async with self._client() as client:
            for attempt in range(attempts):
                try:
                    logger.info(f"API {method} {endpoint} (attempt {attempt + 1}/{attempts})")
                    response = await client.request(
                        method=method,
                        url=endpoint,
                        params=params,
                        json=json_data,
                    )
                except httpx.TransportError as e:
                    logger.warning(f"Request to {endpoint} failed (attempt {attempt + 1}/{attempts}): {e}")
                    if attempt == attempts - 1:
                        raise NetworkError(str(e) or None) from e
                    # Exponential backoff
                    await asyncio.sleep(2 ** attempt)
                    continue

                return self._parse_response(response)

        raise NetworkError("Max retries exceeded")

    def _parse_response(self, response: httpx.Response) -> Dict[str, Any]:
        """Decode the body and translate error statuses into exceptions."""
        try:
            data = response.json() if response.content else {}
        except ValueError:
            logger.error(f"Failed to parse response body: {response.text[:200]}")
            raise NetworkError("Invalid server response", status_code=response.status_code)

        if response.is_success:
            return data

        logger.error(f"HTTP {response.status_code} from {response.request.url}: {response.text[:200]}")
        message = None
        if isinstance(data, dict):
            message = data.get("message") or data.get("error")
        message = message or f"HTTP {response.status_code}"

        if response.status_code == 404:
            raise NotFoundError(message, status_code=404)
        if response.status_code == 409:
            raise ConflictError(message, status_code=409)
        raise NetworkError(message, status_code=response.status_code)

    # Facility endpoints

    async def get_facility(self, slug: str) -> FacilityConfig:
        """Load the configuration snapshot for a facility."""
        logger.info(f"Getting facility: {slug}")
        try:
            data = await self._make_request("GET", f"/facilities/{slug}")
        except NotFoundError as e:
            raise FacilityNotFoundError(f"Facility '{slug}' not found") from e
        try:
            return FacilityConfig.model_validate(_unwrap(data))
        except PydanticValidationError as e:
            raise ConfigError(f"Malformed configuration for facility '{slug}'") from e

    async def get_availability(self, slug: str, target_date: date) -> AvailabilityResponse:
        """
        Get the availability grid for a facility and date.

        Args:
            slug: Facility slug
            target_date: Facility-local calendar date

        Returns:
            Availability snapshot keyed by court id and 24-hour time
        """
        date_str = target_date.strftime("%Y-%m-%d")
        logger.info(f"Getting availability for {slug} on {date_str}")
        data = await self._make_request("GET", f"/availability/{slug}", params={"date": date_str})

        if not isinstance(data, dict) or not isinstance(data.get("availability"), dict):
            raise NetworkError("Invalid API response format")
        try:
            return AvailabilityResponse.model_validate(data)
        except PydanticValidationError as e:
            raise NetworkError("Invalid API response format") from e

    # Discount endpoints

    async def apply_discount(self, slug: str, code: str, base_amount: Decimal) -> Decimal:
        """
        Validate a discount code and price it against the rental amount.

        Returns:
            The concrete discount amount

        Raises:
            NetworkError: if the backend rejects the code or the request fails
        """
        logger.info(f"Validating discount {code!r} for {slug}")
        data = await self._make_request(
            "POST",
            "/discounts/validate",
            json_data={
                "code": code,
                "facilitySlug": slug,
                "baseAmount": float(base_amount),
            },
        )

        if not isinstance(data, dict):
            raise NetworkError("Invalid discount response")

        payload = _unwrap(data)
        if data.get("success") is False:
            raise NetworkError(data.get("message") or data.get("error") or None)

        amount = payload.get("discountAmount")
        if amount is None:
            raise NetworkError("Invalid discount response")
        return Decimal(str(amount))

    # Booking endpoints

    async def create_booking(self, slug: str, payload: BookingPayload) -> str:
        """Create a booking and return its server-assigned id."""
        body = payload.to_wire()
        body["facilitySlug"] = slug
        logger.info(f"Creating booking for {slug}: court {payload.court_number} on {payload.booking_date} at {payload.start_time}")

        data = await self._make_request("POST", "/booking/create-booking", json_data=body)
        booking = _unwrap(data)
        booking_id = booking.get("_id") or booking.get("id") or data.get("_id") or data.get("id")

        if not booking_id:
            raise NetworkError("Booking created but no ID returned")
        return str(booking_id)

    async def confirm_payment(self, booking_id: str, payment_intent_id: str) -> Dict[str, Any]:
        """Tell the backend a booking has been paid; triggers the receipt email."""
        logger.info(f"Confirming payment for booking {booking_id}")
        return await self._make_request(
            "POST",
            "/booking/confirm-payment",
            json_data={"bookingId": booking_id, "paymentIntentId": payment_intent_id},
        )

    async def get_booking(self, booking_id: str) -> Dict[str, Any]:
        """Fetch a single booking."""
        return _unwrap(await self._make_request("GET", f"/booking/{booking_id}"))

    async def get_cancellation_details(self, booking_id: str) -> CancellationDetails:
        """Fetch a booking together with whether it may still be cancelled."""
        data = await self._make_request("GET", f"/booking/{booking_id}/cancel")
        return CancellationDetails.model_validate(_unwrap(data))

    async def cancel_booking(self, booking_id: str) -> Dict[str, Any]:
        """Cancel a booking."""
        logger.info(f"Cancelling booking {booking_id}")
        return await self._make_request("POST", f"/booking/{booking_id}/cancel")

    # Payment endpoints

    async def create_payment_intent(self, amount: int, currency: Optional[str] = None) -> str:
        """
        Create a payment intent.

        Args:
            amount: Amount in minor units (cents)
            currency: ISO currency code

        Returns:
            Client secret for the payment collaborator
        """
        currency = currency or settings.DEFAULT_CURRENCY
        logger.info(f"Creating payment intent: {amount} {currency}")
        data = await self._make_request(
            "POST",
            "/payment/create-intent",
            json_data={"amount": amount, "currency": currency},
        )

        client_secret = _unwrap(data).get("clientSecret") or data.get("clientSecret")
        if not client_secret:
            raise NetworkError("Failed to get payment client secret")
        return client_secret


# Singleton instance
booking_api_client = BookingApiClient()
