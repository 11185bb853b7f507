"""Availability grid resolver.

Works out which one-hour slots a facility offers on a date and reconciles
them with the backend's availability snapshot.

Dates and times are always the facility's local wall clock: the weekend
check, the "is this slot in the past" check and the date sent to the
backend all use the same local calendar date.
"""
import logging
from datetime import date, datetime, time as dt_time, timedelta
from typing import Callable, List, Optional

import pytz

from courtbook.core.config import settings
from courtbook.core.exceptions import CourtBookError, ValidationError
from courtbook.schemas.availability import (
    AvailabilityGrid,
    AvailabilityView,
    CourtSlotStatus,
    SlotRow,
    SlotStatus,
    TimeSlot,
)
from courtbook.schemas.facility import FacilityConfig, HoursWindow
from courtbook.services.booking_api_client import BookingApiClient
from courtbook.services.events import BookingEvent, EventChannel

logger = logging.getLogger(__name__)

DEFAULT_WEEKDAY_HOURS = HoursWindow(start="08:00", end="20:00")
DEFAULT_WEEKEND_HOURS = HoursWindow(start="06:00", end="22:00")

Clock = Callable[[], datetime]


def is_weekend(day: date) -> bool:
    """Saturday or Sunday."""
    return day.weekday() >= 5


def operating_window(facility: FacilityConfig, day: date) -> HoursWindow:
    """Opening hours for the day, falling back to the defaults."""
    weekend = is_weekend(day)
    hours = facility.operating_hours
    window = None
    if hours is not None:
        window = hours.weekend if weekend else hours.weekday

    if window is None:
        logger.warning(f"No operating hours for {facility.slug}, using defaults")
        window = DEFAULT_WEEKEND_HOURS if weekend else DEFAULT_WEEKDAY_HOURS
    return window


def to_12_hour(time24: str) -> str:
    """'13:00' -> '1:00 PM', '00:00' -> '12:00 AM'."""
    try:
        hours_str, minutes_str = time24.strip().split(":")
        hours, minutes = int(hours_str), int(minutes_str)
    except ValueError as e:
        raise ValidationError(f"Invalid time: {time24!r}") from e

    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValidationError(f"Invalid time: {time24!r}")

    period = "PM" if hours >= 12 else "AM"
    display_hour = hours % 12 or 12
    return f"{display_hour}:{minutes:02d} {period}"


def to_24_hour(time12: str) -> str:
    """'1:00 PM' -> '13:00', '12:00 AM' -> '00:00', '12:00 PM' -> '12:00'."""
    try:
        clock_part, period = time12.strip().split(" ")
        if ":" in clock_part:
            hours_str, minutes_str = clock_part.split(":")
        else:
            hours_str, minutes_str = clock_part, "00"
        hours, minutes = int(hours_str), int(minutes_str)
    except ValueError as e:
        raise ValidationError(f"Invalid time: {time12!r}") from e

    period = period.upper()
    if period not in ("AM", "PM") or not (1 <= hours <= 12 and 0 <= minutes <= 59):
        raise ValidationError(f"Invalid time: {time12!r}")

    if period == "PM" and hours != 12:
        hours += 12
    if period == "AM" and hours == 12:
        hours = 0
    return f"{hours:02d}:{minutes:02d}"


def normalize_time(value: str) -> str:
    """Accept either clock format and return 'HH:MM'."""
    upper = value.upper()
    if "AM" in upper or "PM" in upper:
        return to_24_hour(value)
    return to_24_hour(to_12_hour(value))


def add_minutes(time24: str, minutes: int) -> str:
    """Minute arithmetic with hour rollover; '23:00' + 60 -> '24:00'."""
    hours_str, minutes_str = time24.split(":")
    total = int(hours_str) * 60 + int(minutes_str) + minutes
    return f"{total // 60:02d}:{total % 60:02d}"


def is_slot_in_past(
    day: date,
    time24: str,
    now: datetime,
    buffer_minutes: Optional[int] = None,
) -> bool:
    """
    Check whether a slot can no longer be booked.

    Args:
        day: Slot date (facility-local)
        time24: Slot start, 'HH:MM'
        now: Current facility-local time
        buffer_minutes: Lead time a customer needs to reach the court

    Returns:
        True for any slot before today, False for any slot after today,
        and for today True when the slot starts within the buffer.
    """
    if buffer_minutes is None:
        buffer_minutes = settings.PAST_SLOT_BUFFER_MINUTES

    today = now.date()
    if day < today:
        return True
    if day > today:
        return False

    hours_str, minutes_str = time24.split(":")
    slot_start = datetime.combine(day, dt_time(int(hours_str), int(minutes_str)))
    return slot_start <= now.replace(tzinfo=None) + timedelta(minutes=buffer_minutes)


def facility_now(facility: FacilityConfig) -> datetime:
    """Current wall-clock time in the facility's timezone."""
    tz = pytz.timezone(facility.timezone or settings.DEFAULT_TIMEZONE)
    return datetime.now(pytz.UTC).astimezone(tz)


def time_slots(facility: FacilityConfig, day: date, now: datetime) -> List[TimeSlot]:
    """One slot per whole hour in the day's opening window."""
    window = operating_window(facility, day)
    slots = []
    for hour in range(window.start_hour, window.end_hour):
        time24 = f"{hour:02d}:00"
        slots.append(
            TimeSlot(
                label=to_12_hour(time24),
                time24=time24,
                duration_minutes=settings.SLOT_DURATION_MINUTES,
                is_past=is_slot_in_past(day, time24, now),
            )
        )
    return slots


class AvailabilityResolver:
    """Availability for one facility on the currently selected date."""

    def __init__(
        self,
        facility: FacilityConfig,
        client: BookingApiClient,
        events: Optional[EventChannel] = None,
        clock: Optional[Clock] = None,
        selected_date: Optional[date] = None,
    ):
        self.facility = facility
        self.client = client
        self.clock = clock
        self.selected_date = selected_date or self.now().date()

        self.grid: AvailabilityGrid = {}
        self.error: Optional[str] = None
        self.loading = False
        self.last_refreshed: Optional[datetime] = None
        self._sequence = 0

        self._unsubscribers = []
        if events is not None:
            for event in (BookingEvent.BOOKING_CANCELLED, BookingEvent.REFRESH_REQUESTED):
                self._unsubscribers.append(events.subscribe(event, self._on_refresh_signal))

    def now(self) -> datetime:
        """Facility-local now."""
        if self.clock is not None:
            return self.clock()
        return facility_now(self.facility)

    def close(self):
        """Stop listening for refresh signals."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    async def load(self) -> bool:
        """
        Fetch the grid for the selected date.

        Only the most recent request may update the grid; responses that
        arrive after a newer request was issued are dropped.

        Returns:
            True if the grid was updated
        """
        self._sequence += 1
        sequence = self._sequence
        target_date = self.selected_date
        self.loading = True
        self.error = None

        try:
            response = await self.client.get_availability(self.facility.slug, target_date)
        except CourtBookError as e:
            if sequence != self._sequence:
                logger.debug(f"Dropping failed availability response #{sequence} for {target_date}")
                return False
            logger.error(f"Failed to load availability for {self.facility.slug} on {target_date}: {e}")
            # Never keep showing slots as available once a fetch failed.
            self.grid = {}
            self.error = e.message
            self.loading = False
            return False

        if sequence != self._sequence:
            logger.debug(f"Dropping stale availability response #{sequence} for {target_date}")
            return False

        self.grid = response.availability
        self.last_refreshed = self.now()
        self.loading = False
        logger.info(f"Loaded availability for {len(self.grid)} courts at {self.facility.slug} on {target_date}")
        return True

    async def set_date(self, day: date) -> bool:
        """Select another date and fetch its grid."""
        if day < self.now().date():
            raise ValidationError("Cannot select a date in the past")

        if day != self.selected_date:
            self.selected_date = day
            self.grid = {}
        return await self.load()

    async def refresh(self) -> bool:
        """Re-fetch the current date without touching anything else."""
        return await self.load()

    async def _on_refresh_signal(self, **payload):
        logger.info(f"Refresh signal for {self.facility.slug}: {payload or 'manual'}")
        await self.refresh()

    def time_slots(self) -> List[TimeSlot]:
        return time_slots(self.facility, self.selected_date, self.now())

    def find_slot(self, time_value: str) -> Optional[TimeSlot]:
        """The offered slot starting at the given time, if any."""
        time24 = normalize_time(time_value)
        for slot in self.time_slots():
            if slot.time24 == time24:
                return slot
        return None

    def is_past(self, time_value: str) -> bool:
        return is_slot_in_past(self.selected_date, normalize_time(time_value), self.now())

    def is_available(self, court_id: int, time_value: str) -> bool:
        """Grid lookup; a missing court or time counts as unavailable."""
        time24 = normalize_time(time_value)
        return self.grid.get(court_id, {}).get(time24) is True

    def slot_status(self, court_id: int, time_value: str) -> SlotStatus:
        if self.is_past(time_value):
            return SlotStatus.PAST
        if self.is_available(court_id, time_value):
            return SlotStatus.AVAILABLE
        return SlotStatus.UNAVAILABLE

    def available_count(self) -> int:
        """Bookable court/time cells on the selected date."""
        return sum(
            1
            for slot in self.time_slots()
            for court in self.facility.courts
            if self.slot_status(court.id, slot.time24) == SlotStatus.AVAILABLE
        )

    def court_available_count(self, court_id: int) -> int:
        return sum(
            1
            for slot in self.time_slots()
            if self.slot_status(court_id, slot.time24) == SlotStatus.AVAILABLE
        )

    def is_court_fully_booked(self, court_id: int) -> bool:
        """No future slot left on this court."""
        future = [slot for slot in self.time_slots() if not slot.is_past]
        return all(not self.is_available(court_id, slot.time24) for slot in future)

    def is_time_fully_booked(self, time_value: str) -> bool:
        """No court left at this time."""
        if self.is_past(time_value):
            return True
        return all(not self.is_available(court.id, time_value) for court in self.facility.courts)

    def view(self) -> AvailabilityView:
        """The grid as presentation components render it."""
        rows = []
        for slot in self.time_slots():
            courts = [
                CourtSlotStatus(
                    court_id=court.id,
                    court_name=court.name,
                    sport=court.sport,
                    status=self.slot_status(court.id, slot.time24),
                )
                for court in self.facility.courts
            ]
            rows.append(
                SlotRow(
                    slot=slot,
                    courts=courts,
                    fully_booked=self.is_time_fully_booked(slot.time24),
                )
            )

        return AvailabilityView(
            facility_slug=self.facility.slug,
            date=self.selected_date,
            rows=rows,
            available_count=self.available_count(),
            last_refreshed=self.last_refreshed,
            error=self.error,
        )
