"""Shared FastAPI dependencies."""
from courtbook.services.booking_api_client import BookingApiClient, booking_api_client
from courtbook.services.facility_provider import FacilityProvider, facility_provider
from courtbook.services.session_store import SessionStore, session_store


def get_client() -> BookingApiClient:
    return booking_api_client


def get_facility_provider() -> FacilityProvider:
    return facility_provider


def get_session_store() -> SessionStore:
    return session_store
