"""
Tests for the weekly availability model.
"""
from datetime import date
import pytest

from clinic_booking.doctors.availability import (
    AvailabilitySlot,
    InvalidTimeFormat,
    Weekday,
    day_of_week,
    is_open_at,
    normalize_time,
    parse_time,
)

MONDAY_NINE_TO_FIVE = [AvailabilitySlot(Weekday.MONDAY, "09:00", "17:00")]


def test_parse_time_minutes_since_midnight():
    assert parse_time("00:00") == 0
    assert parse_time("09:30") == 570
    assert parse_time("9:30") == 570
    assert parse_time("23:59") == 1439


@pytest.mark.parametrize("value", ["24:00", "12:60", "noon", "12-30", "", "1230", None])
def test_parse_time_rejects_malformed(value):
    with pytest.raises(InvalidTimeFormat):
        parse_time(value)


def test_normalize_time_zero_pads():
    assert normalize_time("9:05") == "09:05"
    assert normalize_time("14:00") == "14:00"


def test_day_of_week_follows_calendar():
    assert day_of_week(date(2030, 1, 7)) == Weekday.MONDAY
    assert day_of_week(date(2030, 1, 13)) == Weekday.SUNDAY


def test_interval_is_half_open():
    assert is_open_at(MONDAY_NINE_TO_FIVE, Weekday.MONDAY, "09:00")
    assert is_open_at(MONDAY_NINE_TO_FIVE, Weekday.MONDAY, "16:59")
    assert not is_open_at(MONDAY_NINE_TO_FIVE, Weekday.MONDAY, "17:00")
    assert not is_open_at(MONDAY_NINE_TO_FIVE, Weekday.MONDAY, "08:59")


def test_other_days_are_closed():
    for day in Weekday:
        if day != Weekday.MONDAY:
            assert not is_open_at(MONDAY_NINE_TO_FIVE, day, "10:00")


def test_overlapping_slots_are_checked_independently():
    slots = [
        AvailabilitySlot(Weekday.FRIDAY, "09:00", "12:00"),
        AvailabilitySlot(Weekday.FRIDAY, "11:00", "15:00"),
    ]
    assert is_open_at(slots, Weekday.FRIDAY, "11:30")
    assert is_open_at(slots, Weekday.FRIDAY, "14:00")
    assert not is_open_at(slots, Weekday.FRIDAY, "15:00")


def test_malformed_request_time_is_an_error():
    with pytest.raises(InvalidTimeFormat):
        is_open_at(MONDAY_NINE_TO_FIVE, Weekday.MONDAY, "25:00")


def test_slot_round_trips_through_dict():
    slot = AvailabilitySlot.from_dict({"day": "Tuesday", "start_time": "08:00", "end_time": "12:00"})
    assert slot.day == Weekday.TUESDAY
    assert slot.to_dict() == {"day": "Tuesday", "start_time": "08:00", "end_time": "12:00"}
