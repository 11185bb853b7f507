"""Booking session endpoints.

Presentation components drive a booking through these endpoints; every
successful call returns the full session state.
"""
from datetime import date as date_type
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from courtbook.api.dependencies import get_client, get_facility_provider, get_session_store
from courtbook.api.errors import http_error
from courtbook.core.exceptions import CourtBookError
from courtbook.schemas.availability import AvailabilityView
from courtbook.schemas.booking import BillingDetails, SessionState
from courtbook.services.booking_api_client import BookingApiClient
from courtbook.services.booking_session import BookingSession, ViewMode
from courtbook.services.facility_provider import FacilityProvider
from courtbook.services.session_store import SessionStore

router = APIRouter(tags=["sessions"])


class CreateSession(BaseModel):
    """Schema for opening a session."""
    date: Optional[date_type] = None


class DateChange(BaseModel):
    date: date_type


class ViewModeChange(BaseModel):
    mode: ViewMode


class SlotPick(BaseModel):
    court_id: int
    time: str


class DetailsUpdate(BaseModel):
    """Only the fields that are sent are changed."""
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    user_id: Optional[str] = None
    discount_code: Optional[str] = None


class DiscountRequest(BaseModel):
    code: Optional[str] = None


class PaymentCompleted(BaseModel):
    payment_intent_id: str


class PaymentFailed(BaseModel):
    message: Optional[str] = None


class FacilitySwitch(BaseModel):
    slug: str


@router.post("/facilities/{slug}/sessions", response_model=SessionState, status_code=201)
async def create_session(
    slug: str,
    body: Optional[CreateSession] = None,
    provider: FacilityProvider = Depends(get_facility_provider),
    client: BookingApiClient = Depends(get_client),
    store: SessionStore = Depends(get_session_store),
):
    """
    Open a booking session at a facility.

    Loads the facility config (once per slug) and the availability for
    the requested date.

    Args:
        slug: Facility slug
        body: Optional starting date

    Returns:
        New session state
    """
    try:
        facility = await provider.get(slug)
        session = BookingSession(
            facility, client, selected_date=body.date if body else None
        )
        await session.load()
    except CourtBookError as e:
        raise http_error(e)

    store.add(session)
    return session.state()


@router.get("/sessions/{session_id}", response_model=SessionState)
async def get_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    """Get the current state of a session."""
    try:
        return store.get(session_id).state()
    except CourtBookError as e:
        raise http_error(e)


@router.get("/sessions/{session_id}/slots", response_model=AvailabilityView)
async def get_session_slots(session_id: str, store: SessionStore = Depends(get_session_store)):
    """Get the slot grid for the session's selected date."""
    try:
        return store.get(session_id).resolver.view()
    except CourtBookError as e:
        raise http_error(e)


@router.delete("/sessions/{session_id}", status_code=204)
async def delete_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    """Discard a session."""
    store.remove(session_id)


@router.post("/sessions/{session_id}/date", response_model=SessionState)
async def change_date(
    session_id: str,
    body: DateChange,
    store: SessionStore = Depends(get_session_store),
):
    """Select another date and load its availability."""
    try:
        session = store.get(session_id)
        await session.select_date(body.date)
        return session.state()
    except CourtBookError as e:
        raise http_error(e)


@router.post("/sessions/{session_id}/view", response_model=SessionState)
async def change_view(
    session_id: str,
    body: ViewModeChange,
    store: SessionStore = Depends(get_session_store),
):
    """Switch between grid and layout views."""
    try:
        session = store.get(session_id)
        session.set_view_mode(body.mode)
        return session.state()
    except CourtBookError as e:
        raise http_error(e)


@router.post("/sessions/{session_id}/refresh", response_model=SessionState)
async def refresh(session_id: str, store: SessionStore = Depends(get_session_store)):
    """Re-fetch availability without touching the booking."""
    try:
        session = store.get(session_id)
        await session.refresh()
        return session.state()
    except CourtBookError as e:
        raise http_error(e)


@router.post("/sessions/{session_id}/slot", response_model=SessionState)
async def pick_slot(
    session_id: str,
    body: SlotPick,
    store: SessionStore = Depends(get_session_store),
):
    """Pick a court and time; moves the session to the details step."""
    try:
        session = store.get(session_id)
        session.select_slot(body.court_id, body.time)
        return session.state()
    except CourtBookError as e:
        raise http_error(e)


@router.post("/sessions/{session_id}/details", response_model=SessionState)
async def update_details(
    session_id: str,
    body: DetailsUpdate,
    store: SessionStore = Depends(get_session_store),
):
    """Update customer fields."""
    try:
        session = store.get(session_id)
        session.update_details(**body.model_dump(exclude_none=True))
        return session.state()
    except CourtBookError as e:
        raise http_error(e)


@router.post("/sessions/{session_id}/discount", response_model=SessionState)
async def apply_discount(
    session_id: str,
    body: DiscountRequest,
    store: SessionStore = Depends(get_session_store),
):
    """Apply a discount code. Only one code per booking."""
    try:
        session = store.get(session_id)
        await session.apply_discount(body.code)
        return session.state()
    except CourtBookError as e:
        raise http_error(e)


@router.post("/sessions/{session_id}/submit", response_model=SessionState)
async def submit(session_id: str, store: SessionStore = Depends(get_session_store)):
    """Validate details and create the booking."""
    try:
        session = store.get(session_id)
        await session.submit_details()
        return session.state()
    except CourtBookError as e:
        raise http_error(e)


@router.post("/sessions/{session_id}/payment/start", response_model=SessionState)
async def start_payment(session_id: str, store: SessionStore = Depends(get_session_store)):
    """Create the payment intent; the client secret is in the returned state."""
    try:
        session = store.get(session_id)
        await session.start_payment()
        return session.state()
    except CourtBookError as e:
        raise http_error(e)


@router.post("/sessions/{session_id}/payment/billing", response_model=BillingDetails)
async def check_billing(
    session_id: str,
    body: BillingDetails,
    store: SessionStore = Depends(get_session_store),
):
    """Validate and normalise card billing details."""
    try:
        return store.get(session_id).validate_billing(body)
    except CourtBookError as e:
        raise http_error(e)


@router.post("/sessions/{session_id}/payment/complete", response_model=SessionState)
async def complete_payment(
    session_id: str,
    body: PaymentCompleted,
    store: SessionStore = Depends(get_session_store),
):
    """Report a successful charge; confirms the booking with the backend."""
    try:
        session = store.get(session_id)
        await session.complete_payment(body.payment_intent_id)
        return session.state()
    except CourtBookError as e:
        raise http_error(e)


@router.post("/sessions/{session_id}/payment/failed", response_model=SessionState)
async def payment_failed(
    session_id: str,
    body: PaymentFailed,
    store: SessionStore = Depends(get_session_store),
):
    """Report a card failure from the payment collaborator."""
    try:
        session = store.get(session_id)
        session.payment_failed(body.message)
        return session.state()
    except CourtBookError as e:
        raise http_error(e)


@router.post("/sessions/{session_id}/back", response_model=SessionState)
async def back(session_id: str, store: SessionStore = Depends(get_session_store)):
    """Go back one step."""
    try:
        session = store.get(session_id)
        session.back()
        return session.state()
    except CourtBookError as e:
        raise http_error(e)


@router.post("/sessions/{session_id}/reset", response_model=SessionState)
async def reset(session_id: str, store: SessionStore = Depends(get_session_store)):
    """Start over at slot selection."""
    try:
        session = store.get(session_id)
        session.reset()
        return session.state()
    except CourtBookError as e:
        raise http_error(e)


@router.post("/sessions/{session_id}/facility", response_model=SessionState)
async def switch_facility(
    session_id: str,
    body: FacilitySwitch,
    provider: FacilityProvider = Depends(get_facility_provider),
    store: SessionStore = Depends(get_session_store),
):
    """Move the session to another facility; everything is reset."""
    try:
        session = store.get(session_id)
        facility = await provider.get(body.slug)
        await session.switch_facility(facility)
        return session.state()
    except CourtBookError as e:
        raise http_error(e)
