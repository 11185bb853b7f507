"""Unit tests for the court layout view."""
from decimal import Decimal

import pytest

from courtbook.schemas.availability import SlotStatus
from courtbook.schemas.facility import FacilityConfig, Sport
from courtbook.services.availability_service import AvailabilityResolver
from courtbook.services.court_layout import build_court_layout, group_by_sport

from conftest import FACILITY_JSON, TOMORROW


class TestLayout:
    def test_group_by_sport_keeps_order(self, facility):
        groups = group_by_sport(facility.courts)
        assert list(groups) == [Sport.BADMINTON, Sport.PICKLEBALL]
        assert [c.id for c in groups[Sport.BADMINTON]] == [1, 2]

    @pytest.mark.asyncio
    async def test_default_columns(self, facility, client, clock):
        resolver = AvailabilityResolver(facility, client, clock=clock, selected_date=TOMORROW)
        await resolver.load()

        tiles = build_court_layout(facility, resolver, "10:00")

        assert [(t.court_id, t.row, t.column) for t in tiles] == [(1, 0, 0), (2, 0, 1), (3, 1, 0)]
        assert [t.status for t in tiles] == [
            SlotStatus.AVAILABLE,
            SlotStatus.AVAILABLE,
            SlotStatus.UNAVAILABLE,
        ]
        assert tiles[0].display_price == Decimal("25.00")
        assert tiles[2].display_price == Decimal("30.00")

    @pytest.mark.asyncio
    async def test_configured_columns(self, client, clock):
        facility = FacilityConfig.model_validate(
            dict(FACILITY_JSON, layoutColumns={"Badminton": 1})
        )
        resolver = AvailabilityResolver(facility, client, clock=clock, selected_date=TOMORROW)
        await resolver.load()

        tiles = build_court_layout(facility, resolver, "2:00 PM")

        assert [(t.court_id, t.row, t.column) for t in tiles] == [(1, 0, 0), (2, 1, 0), (3, 2, 0)]
        assert tiles[2].status == SlotStatus.UNAVAILABLE
