"""Facility endpoints."""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from courtbook.api.dependencies import get_client, get_facility_provider
from courtbook.api.errors import http_error
from courtbook.core.exceptions import CourtBookError
from courtbook.schemas.availability import AvailabilityView, CourtTile
from courtbook.schemas.facility import FacilityConfig
from courtbook.services.availability_service import AvailabilityResolver
from courtbook.services.booking_api_client import BookingApiClient
from courtbook.services.court_layout import build_court_layout
from courtbook.services.facility_provider import FacilityProvider

router = APIRouter(prefix="/facilities", tags=["facilities"])


async def _resolver_for(
    slug: str,
    target_date: Optional[date],
    provider: FacilityProvider,
    client: BookingApiClient,
) -> AvailabilityResolver:
    facility = await provider.get(slug)
    resolver = AvailabilityResolver(facility, client, selected_date=target_date)
    await resolver.load()
    return resolver


@router.get("/{slug}", response_model=FacilityConfig)
async def get_facility(
    slug: str,
    provider: FacilityProvider = Depends(get_facility_provider),
):
    """
    Get a facility's configuration.

    Args:
        slug: Facility slug

    Returns:
        Courts, pricing, operating hours and branding
    """
    try:
        return await provider.get(slug)
    except CourtBookError as e:
        raise http_error(e)


@router.get("/{slug}/slots", response_model=AvailabilityView)
async def get_slots(
    slug: str,
    target_date: Optional[date] = Query(default=None, alias="date", description="Facility-local date (defaults to today)"),
    provider: FacilityProvider = Depends(get_facility_provider),
    client: BookingApiClient = Depends(get_client),
):
    """
    Get the slot grid for a date.

    A failed availability fetch still returns the grid, with every slot
    unavailable and ``error`` set so the caller can offer a retry.
    """
    try:
        resolver = await _resolver_for(slug, target_date, provider, client)
        return resolver.view()
    except CourtBookError as e:
        raise http_error(e)


@router.get("/{slug}/layout", response_model=List[CourtTile])
async def get_layout(
    slug: str,
    time: str = Query(..., description="Slot start, e.g. '9:00 AM' or '09:00'"),
    target_date: Optional[date] = Query(default=None, alias="date"),
    provider: FacilityProvider = Depends(get_facility_provider),
    client: BookingApiClient = Depends(get_client),
):
    """Get the court floor layout with each court's status at a time."""
    try:
        resolver = await _resolver_for(slug, target_date, provider, client)
        return build_court_layout(resolver.facility, resolver, time)
    except CourtBookError as e:
        raise http_error(e)
