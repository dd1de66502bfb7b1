# tests/test_availability_engine.py
from datetime import date, datetime, time

import pytest

from app.core.constants import TARGET_TIMEZONE
from app.core.exceptions import InvalidTimeFormat
from app.schemas.availability import SlotReason
from app.services.availability import AvailabilityEngine, business_day_slot_times
from app.services.slot_store import InMemorySlotStore

MONDAY = date(2025, 9, 8)
SUNDAY = date(2025, 9, 7)
SATURDAY = date(2025, 9, 6)


def _engine(now: datetime, store=None) -> AvailabilityEngine:
    return AvailabilityEngine(store or InMemorySlotStore(), clock=lambda: now)


@pytest.fixture
def engine():
    return _engine(datetime(2025, 9, 1, 8, 0, tzinfo=TARGET_TIMEZONE))


def test_business_day_has_eighteen_half_hour_slots():
    times = business_day_slot_times()

    assert len(times) == 18
    assert times[0] == time(9, 0)
    assert times[-1] == time(17, 30)
    assert time(18, 0) not in times


async def test_monday_2pm_is_available_in_both_formats(engine):
    twenty_four = await engine.check_availability(MONDAY, "14:00")
    twelve = await engine.check_availability(MONDAY, "2:00 PM")

    assert twenty_four.available is True
    assert twelve.available is True
    assert twenty_four.reason == SlotReason.AVAILABLE
    assert twelve.time == twenty_four.time == "14:00"
    assert twelve.day_of_week == "Monday"
    assert twelve.hour == 14


async def test_nine_am_boundary_is_available(engine):
    result = await engine.check_availability(MONDAY, "09:00")
    assert result.available is True


async def test_weekday_failure_takes_precedence(engine):
    # Sunday, outside business hours, and in the past relative to a later clock
    late_engine = _engine(datetime(2025, 9, 10, 12, 0, tzinfo=TARGET_TIMEZONE))
    result = await late_engine.check_availability(SUNDAY, "20:00")

    assert result.available is False
    assert result.reason == SlotReason.NOT_A_WEEKDAY
    assert result.is_business_hours is False
    assert result.is_future is False


async def test_business_hours_failure_before_past(engine):
    late_engine = _engine(datetime(2025, 9, 10, 12, 0, tzinfo=TARGET_TIMEZONE))
    result = await late_engine.check_availability(MONDAY, "18:00")

    assert result.reason == SlotReason.OUTSIDE_BUSINESS_HOURS


async def test_past_before_booked():
    store = InMemorySlotStore()
    await store.reserve(MONDAY, time(10, 0))
    late_engine = _engine(datetime(2025, 9, 8, 11, 0, tzinfo=TARGET_TIMEZONE), store)

    result = await late_engine.check_availability(MONDAY, "10:00")

    assert result.reason == SlotReason.PAST_TIME_SLOT
    assert result.is_booked is True


async def test_booked_slot_is_reported(engine):
    await engine.store.reserve(MONDAY, time(10, 0))

    result = await engine.check_availability(MONDAY, "10:00 AM")

    assert result.available is False
    assert result.reason == SlotReason.ALREADY_BOOKED


async def test_check_is_idempotent(engine):
    first = await engine.check_availability(MONDAY, "11:30")
    second = await engine.check_availability(MONDAY, "11:30")

    assert first == second


async def test_invalid_time_raises(engine):
    with pytest.raises(InvalidTimeFormat):
        await engine.check_availability(MONDAY, "half past two")


@pytest.mark.parametrize("weekend", [SATURDAY, SUNDAY])
async def test_weekend_has_no_slots(engine, weekend):
    day = await engine.enumerate_slots(weekend)

    assert day.slots == []
    assert day.available is False
    assert day.total_slots == 0
    assert "Monday to Friday" in day.message


async def test_enumerate_slots_for_future_weekday(engine):
    day = await engine.enumerate_slots(MONDAY)

    assert day.day_of_week == "Monday"
    assert day.total_slots == 18
    assert day.available_slots == 18
    assert day.available is True
    assert day.slots[0].time == "09:00"
    assert day.slots[0].display_time == "9:00 AM"
    assert day.slots[-1].time == "17:30"
    assert all(s.reason == SlotReason.AVAILABLE for s in day.slots)


async def test_enumerate_slots_marks_past_and_booked():
    store = InMemorySlotStore()
    await store.reserve(MONDAY, time(10, 0))   # past and booked -> past wins
    await store.reserve(MONDAY, time(15, 0))   # future and booked
    engine = _engine(datetime(2025, 9, 8, 12, 0, tzinfo=TARGET_TIMEZONE), store)

    day = await engine.enumerate_slots(MONDAY)
    by_time = {s.time: s for s in day.slots}

    assert by_time["10:00"].reason == SlotReason.PAST_TIME_SLOT
    # slot starting exactly at "now" counts as past
    assert by_time["12:00"].reason == SlotReason.PAST_TIME_SLOT
    assert by_time["12:30"].reason == SlotReason.AVAILABLE
    assert by_time["15:00"].reason == SlotReason.ALREADY_BOOKED
    assert by_time["15:00"].available is False
    # 12:30 .. 17:30 is 11 slots, one of them booked
    assert day.available_slots == 10


async def test_list_booked_slots(engine):
    await engine.store.reserve(MONDAY, time(14, 0))
    await engine.store.reserve(MONDAY, time(9, 30))

    booked = await engine.list_booked_slots(MONDAY)

    assert booked.total_booked == 2
    assert [b.time for b in booked.booked_slots] == ["09:30", "14:00"]
    assert booked.booked_slots[1].display_time == "2:00 PM"
    assert all(b.booked for b in booked.booked_slots)


@pytest.mark.parametrize("time_input", ["9:15 AM", "09:45", "17:59"])
async def test_times_off_the_slot_grid_are_rejected(engine, time_input):
    with pytest.raises(InvalidTimeFormat):
        await engine.check_availability(MONDAY, time_input)
