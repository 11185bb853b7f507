"""Booking lookup and cancellation endpoints."""
from fastapi import APIRouter, Depends

from courtbook.api.dependencies import get_client, get_session_store
from courtbook.api.errors import http_error
from courtbook.core.exceptions import CourtBookError
from courtbook.schemas.cancellation import CancellationDetails
from courtbook.services.booking_api_client import BookingApiClient
from courtbook.services.cancellation_service import CancellationService
from courtbook.services.events import BookingEvent
from courtbook.services.session_store import SessionStore

router = APIRouter(prefix="/bookings/{booking_id}", tags=["cancellations"])


@router.get("")
async def get_booking(
    booking_id: str,
    client: BookingApiClient = Depends(get_client),
):
    """Get a booking as stored by the backend, e.g. for a confirmation page."""
    try:
        return await client.get_booking(booking_id)
    except CourtBookError as e:
        raise http_error(e)


@router.get("/cancellation", response_model=CancellationDetails)
async def get_cancellation_details(
    booking_id: str,
    client: BookingApiClient = Depends(get_client),
):
    """
    Get a booking and whether it can still be cancelled.

    Bookings cannot be cancelled within 24 hours of their start; the
    backend decides, this endpoint only reports it.

    Args:
        booking_id: Booking ID

    Returns:
        Booking details with ``can_cancel`` and ``hours_until_booking``
    """
    try:
        return await CancellationService(client).get_details(booking_id)
    except CourtBookError as e:
        raise http_error(e)


@router.post("/cancel")
async def cancel_booking(
    booking_id: str,
    client: BookingApiClient = Depends(get_client),
    store: SessionStore = Depends(get_session_store),
):
    """
    Cancel a booking.

    Every open session is told about the cancellation so its availability
    grid is re-fetched and the freed slot shows up.
    """
    service = CancellationService(client)
    try:
        await service.get_details(booking_id)
        result = await service.cancel(booking_id)
    except CourtBookError as e:
        raise http_error(e)

    await store.broadcast(BookingEvent.BOOKING_CANCELLED, booking_id=booking_id)
    return {
        "booking_id": booking_id,
        "cancelled": True,
        "message": "Booking cancelled successfully! A confirmation email has been sent.",
        "result": result,
    }
