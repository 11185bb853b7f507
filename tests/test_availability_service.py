"""Unit tests for the availability resolver."""
import asyncio
from datetime import timedelta

import pytest

from courtbook.core.exceptions import NetworkError, ValidationError
from courtbook.schemas.availability import AvailabilityResponse, SlotStatus
from courtbook.services.availability_service import AvailabilityResolver
from courtbook.services.events import BookingEvent, EventChannel

from conftest import FIXED_NOW, TODAY, TOMORROW, YESTERDAY


class GatedClient:
    """Client whose availability responses are released by the test, in any order."""

    def __init__(self):
        self.pending = []

    async def get_availability(self, slug, target_date):
        future = asyncio.get_running_loop().create_future()
        self.pending.append((target_date, future))
        return await future

    def respond(self, index, grid=None, error=None):
        target_date, future = self.pending[index]
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(AvailabilityResponse(availability=grid, date=target_date))



@pytest.fixture
def resolver(facility, client, clock):
    return AvailabilityResolver(facility, client, clock=clock, selected_date=TOMORROW)


class TestLoad:
    @pytest.mark.asyncio
    async def test_load_populates_grid(self, resolver):
        assert await resolver.load()

        assert resolver.grid[1]["09:00"] is True
        assert resolver.grid[2]["09:00"] is False
        assert resolver.error is None
        assert resolver.last_refreshed == FIXED_NOW
        assert not resolver.loading

    @pytest.mark.asyncio
    async def test_sends_local_date(self, resolver, backend):
        await resolver.load()

        request = backend.calls("GET", "/availability/dome-sports")[-1]
        assert request.url.params["date"] == TOMORROW.isoformat()

    @pytest.mark.asyncio
    async def test_absent_entries_are_unavailable(self, resolver):
        await resolver.load()

        assert resolver.is_available(1, "09:00")
        assert not resolver.is_available(1, "11:00")
        # Not in the grid at all
        assert not resolver.is_available(1, "15:00")
        assert not resolver.is_available(3, "09:00")
        assert not resolver.is_available(99, "09:00")

    @pytest.mark.asyncio
    async def test_accepts_12_hour_times(self, resolver):
        await resolver.load()
        assert resolver.is_available(1, "2:00 PM")

    @pytest.mark.asyncio
    async def test_failure_clears_grid_and_sets_error(self, resolver, backend):
        await resolver.load()
        assert resolver.grid

        backend.fail("GET", "/availability/dome-sports", status=500, body={"message": "Database unavailable"})
        assert not await resolver.load()

        assert resolver.grid == {}
        assert resolver.error == "Database unavailable"
        assert not resolver.is_available(1, "09:00")
        assert resolver.available_count() == 0

    @pytest.mark.asyncio
    async def test_malformed_response_is_an_error(self, resolver, backend):
        backend.availability[TOMORROW.isoformat()] = ["not", "a", "grid"]
        await resolver.load()

        assert resolver.grid == {}
        assert resolver.error == "Invalid API response format"


class TestStaleResponses:
    """Only the newest request may update the grid."""

    @pytest.mark.asyncio
    async def test_late_response_for_old_date_is_dropped(self, facility, clock):
        day_after = TOMORROW + timedelta(days=1)
        client = GatedClient()
        resolver = AvailabilityResolver(facility, client, clock=clock, selected_date=TOMORROW)

        first = asyncio.create_task(resolver.load())
        await asyncio.sleep(0)
        second = asyncio.create_task(resolver.set_date(day_after))
        await asyncio.sleep(0)
        assert [day for day, _ in client.pending] == [TOMORROW, day_after]

        # The newer request answers first, then the older one.
        client.respond(1, grid={1: {"10:00": True}})
        assert await second
        client.respond(0, grid={1: {"10:00": False}})
        assert not await first

        assert resolver.selected_date == day_after
        assert resolver.grid == {1: {"10:00": True}}
        assert resolver.is_available(1, "10:00")

    @pytest.mark.asyncio
    async def test_late_failure_does_not_clear_newer_grid(self, facility, clock):
        client = GatedClient()
        resolver = AvailabilityResolver(facility, client, clock=clock, selected_date=TOMORROW)

        first = asyncio.create_task(resolver.load())
        await asyncio.sleep(0)
        second = asyncio.create_task(resolver.refresh())
        await asyncio.sleep(0)

        client.respond(1, grid={2: {"14:00": True}})
        assert await second
        client.respond(0, error=NetworkError("Gateway timeout"))
        assert not await first

        assert resolver.grid == {2: {"14:00": True}}
        assert resolver.error is None



class TestSetDate:
    @pytest.mark.asyncio
    async def test_past_date_rejected(self, resolver, backend):
        with pytest.raises(ValidationError):
            await resolver.set_date(YESTERDAY)
        assert resolver.selected_date == TOMORROW
        assert backend.calls("GET", "/availability/dome-sports") == []

    @pytest.mark.asyncio
    async def test_today_allowed(self, resolver):
        assert await resolver.set_date(TODAY)
        assert resolver.selected_date == TODAY

    @pytest.mark.asyncio
    async def test_new_date_fetches_its_grid(self, resolver, backend):
        day_after = TOMORROW + timedelta(days=1)
        backend.availability[day_after.isoformat()] = {"1": {"08:00": True}}

        await resolver.load()
        await resolver.set_date(day_after)

        assert resolver.grid == {1: {"08:00": True}}


class TestRefreshSignals:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("event", [BookingEvent.BOOKING_CANCELLED, BookingEvent.REFRESH_REQUESTED])
    async def test_signal_triggers_refetch(self, facility, client, clock, backend, event):
        events = EventChannel()
        resolver = AvailabilityResolver(facility, client, events, clock, TOMORROW)
        await resolver.load()
        assert resolver.is_available(1, "09:00")

        backend.availability[TOMORROW.isoformat()] = {"1": {"09:00": False}}
        await events.publish(event, booking_id="bk_1")

        assert not resolver.is_available(1, "09:00")
        assert resolver.selected_date == TOMORROW
        assert len(backend.calls("GET", "/availability/dome-sports")) == 2

    @pytest.mark.asyncio
    async def test_close_unsubscribes(self, facility, client, clock, backend):
        events = EventChannel()
        resolver = AvailabilityResolver(facility, client, events, clock, TOMORROW)
        resolver.close()

        await events.publish(BookingEvent.REFRESH_REQUESTED)

        assert events.subscriber_count(BookingEvent.REFRESH_REQUESTED) == 0
        assert backend.calls("GET", "/availability/dome-sports") == []


class TestDisplayHelpers:
    @pytest.mark.asyncio
    async def test_slot_status(self, resolver):
        await resolver.load()
        assert resolver.slot_status(1, "09:00") == SlotStatus.AVAILABLE
        assert resolver.slot_status(2, "09:00") == SlotStatus.UNAVAILABLE

    @pytest.mark.asyncio
    async def test_past_status_today(self, facility, client, clock):
        resolver = AvailabilityResolver(facility, client, clock=clock, selected_date=TODAY)
        await resolver.load()

        # Available in the grid, but it is already 10:00
        assert resolver.slot_status(1, "09:00") == SlotStatus.PAST
        assert resolver.slot_status(1, "10:00") == SlotStatus.PAST
        assert resolver.slot_status(1, "14:00") == SlotStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_counts(self, resolver):
        await resolver.load()

        # court 1: 09, 10, 14; court 2: 10, 14
        assert resolver.available_count() == 5
        assert resolver.court_available_count(1) == 3
        assert resolver.court_available_count(3) == 0

    @pytest.mark.asyncio
    async def test_fully_booked(self, resolver):
        await resolver.load()

        assert resolver.is_court_fully_booked(3)
        assert not resolver.is_court_fully_booked(1)
        assert resolver.is_time_fully_booked("11:00")
        assert not resolver.is_time_fully_booked("14:00")

    @pytest.mark.asyncio
    async def test_view(self, resolver):
        await resolver.load()
        view = resolver.view()

        assert view.facility_slug == "dome-sports"
        assert view.date == TOMORROW
        assert len(view.rows) == 12
        assert view.available_count == 5

        nine = next(row for row in view.rows if row.slot.time24 == "09:00")
        assert [c.status for c in nine.courts] == [
            SlotStatus.AVAILABLE,
            SlotStatus.UNAVAILABLE,
            SlotStatus.UNAVAILABLE,
        ]
        assert not nine.fully_booked

    @pytest.mark.asyncio
    async def test_view_after_failure_shows_error(self, resolver, backend):
        backend.fail("GET", "/availability/dome-sports", status=503)
        await resolver.load()
        view = resolver.view()

        assert view.error == "HTTP 503"
        assert view.available_count == 0
        assert all(row.fully_booked for row in view.rows)


class TestNetworkErrorType:
    @pytest.mark.asyncio
    async def test_transport_error_message(self, facility, clock):
        class BrokenClient:
            async def get_availability(self, slug, target_date):
                raise NetworkError()

        resolver = AvailabilityResolver(facility, BrokenClient(), clock=clock, selected_date=TOMORROW)
        await resolver.load()
        assert resolver.error == "Network request failed"
