"""Unit tests for slot generation and time helpers."""
from datetime import datetime

import pytest
import pytz

from courtbook.core.exceptions import ValidationError
from courtbook.schemas.facility import FacilityConfig
from courtbook.services.availability_service import (
    add_minutes,
    is_slot_in_past,
    is_weekend,
    normalize_time,
    operating_window,
    time_slots,
    to_12_hour,
    to_24_hour,
)

from conftest import FACILITY_JSON, FIXED_NOW, SATURDAY, TODAY, TOMORROW, YESTERDAY


class TestClockFormats:
    @pytest.mark.parametrize("hour", range(24))
    def test_round_trip(self, hour):
        time24 = f"{hour:02d}:00"
        assert to_24_hour(to_12_hour(time24)) == time24

    def test_midnight_and_noon(self):
        assert to_12_hour("00:00") == "12:00 AM"
        assert to_12_hour("12:00") == "12:00 PM"
        assert to_24_hour("12:00 AM") == "00:00"
        assert to_24_hour("12:00 PM") == "12:00"

    def test_afternoon(self):
        assert to_12_hour("13:00") == "1:00 PM"
        assert to_24_hour("1:00 PM") == "13:00"
        assert to_24_hour("9:30 am") == "09:30"

    @pytest.mark.parametrize("value", ["", "25:00", "ab:cd", "13:00 PM", "0:00 AM", "1:00 XM"])
    def test_invalid_values_rejected(self, value):
        with pytest.raises(ValidationError):
            if "M" in value:
                to_24_hour(value)
            else:
                to_12_hour(value)

    def test_normalize_accepts_both_formats(self):
        assert normalize_time("2:00 PM") == "14:00"
        assert normalize_time("9:00") == "09:00"

    def test_add_minutes(self):
        assert add_minutes("14:00", 60) == "15:00"
        assert add_minutes("09:30", 45) == "10:15"
        assert add_minutes("23:00", 60) == "24:00"


class TestPastSlots:
    """A slot is past when it starts within the arrival buffer."""

    def test_ten_minutes_away_is_past(self):
        now = datetime(2026, 10, 14, 10, 50)
        assert is_slot_in_past(TODAY, "11:00", now, buffer_minutes=15)

    def test_twenty_minutes_away_is_bookable(self):
        now = datetime(2026, 10, 14, 10, 40)
        assert not is_slot_in_past(TODAY, "11:00", now, buffer_minutes=15)

    def test_started_slot_is_past(self):
        assert is_slot_in_past(TODAY, "09:00", FIXED_NOW, buffer_minutes=15)

    def test_yesterday_is_all_past(self):
        assert all(
            is_slot_in_past(YESTERDAY, f"{hour:02d}:00", FIXED_NOW) for hour in range(24)
        )

    def test_tomorrow_is_never_past(self):
        late = datetime(2026, 10, 14, 23, 59)
        assert not any(
            is_slot_in_past(TOMORROW, f"{hour:02d}:00", late) for hour in range(24)
        )

    def test_timezone_aware_now_uses_wall_clock(self):
        now = pytz.timezone("America/Toronto").localize(datetime(2026, 10, 14, 10, 40))
        assert not is_slot_in_past(TODAY, "11:00", now, buffer_minutes=15)


class TestOperatingWindow:
    def test_weekend_detection(self):
        assert is_weekend(SATURDAY)
        assert not is_weekend(TODAY)

    def test_weekday_and_weekend_hours(self, facility):
        assert operating_window(facility, TODAY).start == "08:00"
        assert operating_window(facility, SATURDAY).start == "06:00"
        assert operating_window(facility, SATURDAY).end == "22:00"

    def test_missing_hours_fall_back_to_defaults(self):
        data = dict(FACILITY_JSON)
        data.pop("operatingHours")
        facility = FacilityConfig.model_validate(data)

        weekday = operating_window(facility, TODAY)
        weekend = operating_window(facility, SATURDAY)

        assert (weekday.start, weekday.end) == ("08:00", "20:00")
        assert (weekend.start, weekend.end) == ("06:00", "22:00")


class TestTimeSlots:
    def test_one_slot_per_hour(self, facility):
        slots = time_slots(facility, TOMORROW, FIXED_NOW)

        assert [s.time24 for s in slots] == [f"{h:02d}:00" for h in range(8, 20)]
        assert slots[0].label == "8:00 AM"
        assert slots[-1].label == "7:00 PM"
        assert all(s.duration_minutes == 60 for s in slots)
        assert not any(s.is_past for s in slots)

    def test_weekend_has_longer_hours(self, facility):
        slots = time_slots(facility, SATURDAY, FIXED_NOW)
        assert len(slots) == 16

    def test_today_marks_elapsed_slots(self, facility):
        slots = time_slots(facility, TODAY, FIXED_NOW)
        past = [s.time24 for s in slots if s.is_past]
        assert past == ["08:00", "09:00", "10:00"]
