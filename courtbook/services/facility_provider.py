"""Facility configuration provider."""
import logging
from typing import Dict

from courtbook.schemas.facility import FacilityConfig
from courtbook.services.booking_api_client import BookingApiClient, booking_api_client

logger = logging.getLogger(__name__)


class FacilityProvider:
    """Loads each tenant's configuration once and hands out the snapshot."""

    def __init__(self, client: BookingApiClient):
        self.client = client
        self._cache: Dict[str, FacilityConfig] = {}

    async def get(self, slug: str) -> FacilityConfig:
        """
        Get the configuration for a facility, loading it on first use.

        Raises:
            FacilityNotFoundError: unknown slug
            ConfigError: the backend returned a malformed config
        """
        facility = self._cache.get(slug)
        if facility is None:
            facility = await self.client.get_facility(slug)
            self._cache[slug] = facility
            logger.info(f"Loaded facility {facility.name} ({slug}) with {len(facility.courts)} courts")
        return facility

    def invalidate(self, slug: str):
        """Drop a cached snapshot so the next ``get`` reloads it."""
        self._cache.pop(slug, None)


# Singleton instance
facility_provider = FacilityProvider(booking_api_client)
