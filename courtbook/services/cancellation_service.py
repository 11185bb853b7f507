"""Booking cancellation."""
import logging
from typing import Dict, Optional

from courtbook.core.exceptions import InvalidTransitionError
from courtbook.schemas.cancellation import CancellationDetails
from courtbook.services.booking_api_client import BookingApiClient
from courtbook.services.events import BookingEvent, EventChannel

logger = logging.getLogger(__name__)

CANCELLATION_WINDOW_HOURS = 24


class CancellationService:
    """Looks up and cancels bookings.

    The 24-hour cutoff is enforced by the backend; ``can_cancel`` is only
    mirrored here so a refusal can be shown without a round trip.
    """

    def __init__(self, client: BookingApiClient, events: Optional[EventChannel] = None):
        self.client = client
        self.events = events
        self._details: Dict[str, CancellationDetails] = {}

    async def get_details(self, booking_id: str) -> CancellationDetails:
        """Fetch a booking and whether it may still be cancelled."""
        details = await self.client.get_cancellation_details(booking_id)
        self._details[booking_id] = details
        logger.info(
            f"Booking {booking_id}: can_cancel={details.can_cancel}, "
            f"{details.hours_until_booking:.1f}h until start"
        )
        return details

    async def cancel(self, booking_id: str) -> Dict:
        """
        Cancel a booking and tell open availability views to refresh.

        Raises:
            InvalidTransitionError: the last lookup said it is too late
            NetworkError: the backend refused or could not be reached
        """
        known = self._details.get(booking_id)
        if known is not None and not known.can_cancel:
            raise InvalidTransitionError(
                f"Bookings can only be cancelled more than {CANCELLATION_WINDOW_HOURS} hours in advance"
            )

        result = await self.client.cancel_booking(booking_id)
        self._details.pop(booking_id, None)
        logger.info(f"Booking {booking_id} cancelled")

        if self.events is not None:
            await self.events.publish(BookingEvent.BOOKING_CANCELLED, booking_id=booking_id)
        return result
