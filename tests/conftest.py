import json
from datetime import date, datetime, timedelta

import httpx
import pytest
import pytest_asyncio

from courtbook.schemas.facility import FacilityConfig
from courtbook.services.booking_api_client import BookingApiClient
from courtbook.services.booking_session import BookingSession

BASE_URL = "https://backend.test/api/v1"

# Wednesday 10:00 facility-local
FIXED_NOW = datetime(2026, 10, 14, 10, 0)
TODAY = FIXED_NOW.date()
TOMORROW = TODAY + timedelta(days=1)
YESTERDAY = TODAY - timedelta(days=1)
SATURDAY = date(2026, 10, 17)

FACILITY_JSON = {
    "_id": "68cad6b20a06da55dfb88af5",
    "slug": "dome-sports",
    "name": "Vision Badminton Centre",
    "courts": [
        {"id": 1, "name": "Court 1", "sport": "Badminton"},
        {"id": 2, "name": "Court 2", "sport": "Badminton"},
        {"id": 3, "name": "Court 3", "sport": "Pickleball"},
    ],
    "pricing": {
        "courtRental": 25.0,
        "serviceFeePercentage": 1.0,
        "taxPercentage": 13.0,
        "currency": "cad",
    },
    "operatingHours": {
        "weekday": {"start": "08:00", "end": "20:00"},
        "weekend": {"start": "06:00", "end": "22:00"},
    },
    "branding": {"primaryColor": "#EB3958"},
    "timezone": "America/Toronto",
}

GRID = {
    "1": {"09:00": True, "10:00": True, "11:00": False, "14:00": True},
    "2": {"09:00": False, "10:00": True, "14:00": True},
    "3": {"14:00": False},
}


class FakeBackend:
    """In-process stand-in for the booking backend."""

    def __init__(self, facility=None):
        self.facilities = {"dome-sports": facility or FACILITY_JSON}
        self.availability = {}
        self.default_grid = GRID
        self.discounts = {"WELCOME10": 10.0}
        self.failures = {}
        self.requests = []
        self.bookings_created = 0
        self.can_cancel = True

    def fail(self, method, path, status=500, body=None):
        """Make every call to ``method path`` return an error."""
        self.failures[(method, path)] = (status, body if body is not None else {"message": f"HTTP {status}"})

    def calls(self, method, path):
        return [r for r in self.requests if r.method == method and r.url.path.endswith(path)]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path[len("/api/v1"):]
        method = request.method

        if (method, path) in self.failures:
            status, body = self.failures[(method, path)]
            return httpx.Response(status, json=body)

        body = json.loads(request.content) if request.content else {}

        if method == "GET" and path.startswith("/facilities/"):
            slug = path.split("/")[2]
            if slug not in self.facilities:
                return httpx.Response(404, json={"message": "Facility not found"})
            return httpx.Response(200, json={"success": True, "data": self.facilities[slug]})

        if method == "GET" and path.startswith("/availability/"):
            day = request.url.params["date"]
            grid = self.availability.get(day, self.default_grid)
            return httpx.Response(200, json={"availability": grid, "date": day})

        if method == "POST" and path == "/discounts/validate":
            amount = self.discounts.get(body.get("code"))
            if amount is None:
                return httpx.Response(400, json={"success": False, "message": "Discount code expired"})
            return httpx.Response(200, json={"success": True, "data": {"discountAmount": amount}})

        if method == "POST" and path == "/booking/create-booking":
            self.bookings_created += 1
            return httpx.Response(201, json={"success": True, "data": {"_id": f"bk_{self.bookings_created}"}})

        if method == "POST" and path == "/payment/create-intent":
            return httpx.Response(200, json={"clientSecret": f"pi_{body['amount']}_secret"})

        if method == "POST" and path == "/booking/confirm-payment":
            return httpx.Response(200, json={"success": True})

        if path.startswith("/booking/") and path.endswith("/cancel"):
            booking_id = path.split("/")[2]
            if method == "GET":
                return httpx.Response(200, json={
                    "booking": {"_id": booking_id, "courtNumber": 1},
                    "canCancel": self.can_cancel,
                    "hoursUntilBooking": 48 if self.can_cancel else 5,
                })
            return httpx.Response(200, json={"success": True})

        if method == "GET" and path.startswith("/booking/"):
            booking_id = path.split("/")[2]
            return httpx.Response(200, json={"success": True, "data": {"_id": booking_id, "status": "confirmed"}})

        return httpx.Response(404, json={"message": "Not found"})


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def client(backend):
    return BookingApiClient(
        base_url=BASE_URL,
        max_retries=1,
        transport=httpx.MockTransport(backend.handler),
    )


@pytest.fixture
def facility():
    return FacilityConfig.model_validate(FACILITY_JSON)


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest_asyncio.fixture
async def session(facility, client, clock):
    """A session on tomorrow's date with availability loaded."""
    booking_session = BookingSession(facility, client, clock=clock, selected_date=TOMORROW)
    await booking_session.load()
    return booking_session
