# app/services/availability.py
from __future__ import annotations

from collections.abc import Callable
from datetime import date as date_type, datetime, time, timedelta

from app.core.constants import (
    BUSINESS_END_HOUR,
    BUSINESS_HOURS_LABEL,
    BUSINESS_START_HOUR,
    SLOT_MINUTES,
    TARGET_TIMEZONE,
    TARGET_TIMEZONE_LABEL,
)
from app.core.exceptions import InvalidTimeFormat
from app.schemas.availability import (
    AvailabilityCheck,
    BookedSlotRead,
    BookedSlotsResponse,
    DaySlots,
    SlotReason,
    TimeSlot,
)
from app.services.business_rules import BusinessRulesEvaluator
from app.services.slot_store import SlotStore
from app.services.time_normalizer import format_time, normalize_to_24_hour, parse_time, to_display_time

Clock = Callable[[], datetime]

WEEKDAY_ONLY_MESSAGE = "Meetings are only available Monday to Friday."
BUSINESS_HOURS_MESSAGE = "Meetings are only available between 9:00 AM and 6:00 PM (GMT+5:30)."
PAST_SLOT_MESSAGE = "The selected time slot is in the past."
BOOKED_MESSAGE = "The selected time slot is already booked."
AVAILABLE_MESSAGE = "Time slot is available."

_MESSAGES = {
    SlotReason.NOT_A_WEEKDAY: WEEKDAY_ONLY_MESSAGE,
    SlotReason.OUTSIDE_BUSINESS_HOURS: BUSINESS_HOURS_MESSAGE,
    SlotReason.PAST_TIME_SLOT: PAST_SLOT_MESSAGE,
    SlotReason.ALREADY_BOOKED: BOOKED_MESSAGE,
    SlotReason.AVAILABLE: AVAILABLE_MESSAGE,
}


def default_clock() -> datetime:
    return datetime.now(tz=TARGET_TIMEZONE)


def business_day_slot_times() -> list[time]:
    """
    Slot start times from 09:00 up to, but excluding, 18:00.
    """
    current = datetime.combine(date_type.min, time(BUSINESS_START_HOUR, 0))
    end = datetime.combine(date_type.min, time(BUSINESS_END_HOUR, 0))
    times: list[time] = []
    while current < end:
        times.append(current.time())
        current += timedelta(minutes=SLOT_MINUTES)
    return times


class AvailabilityEngine:
    """
    Answers "is this slot free?" and "what does this day look like?".

    Combines the pure BusinessRulesEvaluator with lookups against the
    injected SlotStore. The clock is injectable so that past/future
    decisions are deterministic under test.
    """

    def __init__(self, store: SlotStore, clock: Clock = default_clock) -> None:
        self.store = store
        self.clock = clock

    async def check_availability(self, slot_date: date_type, time_input: str) -> AvailabilityCheck:
        """
        Evaluate a single slot. `time_input` may be 12- or 24-hour.

        Raises InvalidTimeFormat for unparseable times and for times off the
        30-minute slot grid.
        """
        time24h = normalize_to_24_hour(time_input)
        slot_time = parse_time(time24h)
        if slot_time.minute % SLOT_MINUTES:
            raise InvalidTimeFormat(
                f"{time24h} is not a slot start; slots begin every {SLOT_MINUTES} minutes "
                "on the hour and half hour."
            )

        evaluation = BusinessRulesEvaluator.evaluate(slot_date, slot_time, self.clock())
        is_booked = await self.store.is_booked(slot_date, slot_time)

        if not evaluation.is_weekday:
            reason = SlotReason.NOT_A_WEEKDAY
        elif not evaluation.is_business_hours:
            reason = SlotReason.OUTSIDE_BUSINESS_HOURS
        elif not evaluation.is_future:
            reason = SlotReason.PAST_TIME_SLOT
        elif is_booked:
            reason = SlotReason.ALREADY_BOOKED
        else:
            reason = SlotReason.AVAILABLE

        return AvailabilityCheck(
            available=reason is SlotReason.AVAILABLE,
            message=_MESSAGES[reason],
            reason=reason,
            date=slot_date,
            time=time24h,
            display_time=to_display_time(time24h),
            day_of_week=evaluation.day_of_week,
            hour=evaluation.hour,
            is_weekday=evaluation.is_weekday,
            is_business_hours=evaluation.is_business_hours,
            is_future=evaluation.is_future,
            is_booked=is_booked,
        )

    async def enumerate_slots(self, slot_date: date_type) -> DaySlots:
        """
        List every 30-minute slot of a business day with its status.

        Weekends yield no slots at all.
        """
        day_of_week = slot_date.strftime("%A")

        if not BusinessRulesEvaluator.is_weekday(slot_date):
            return DaySlots(
                date=slot_date,
                day_of_week=day_of_week,
                timezone=TARGET_TIMEZONE_LABEL,
                business_hours=BUSINESS_HOURS_LABEL,
                available=False,
                message=WEEKDAY_ONLY_MESSAGE,
                total_slots=0,
                available_slots=0,
                slots=[],
            )

        now = self.clock()
        booked = set(await self.store.list_booked(slot_date))

        slots: list[TimeSlot] = []
        for slot_time in business_day_slot_times():
            is_past = BusinessRulesEvaluator.slot_start(slot_date, slot_time) <= now
            is_booked = slot_time in booked

            if is_past:
                reason = SlotReason.PAST_TIME_SLOT
            elif is_booked:
                reason = SlotReason.ALREADY_BOOKED
            else:
                reason = SlotReason.AVAILABLE

            time24h = format_time(slot_time)
            slots.append(
                TimeSlot(
                    time=time24h,
                    display_time=to_display_time(time24h),
                    available=reason is SlotReason.AVAILABLE,
                    reason=reason,
                )
            )

        available_count = sum(1 for s in slots if s.available)
        return DaySlots(
            date=slot_date,
            day_of_week=day_of_week,
            timezone=TARGET_TIMEZONE_LABEL,
            business_hours=BUSINESS_HOURS_LABEL,
            available=available_count > 0,
            message=(
                f"{available_count} slot(s) available on {day_of_week}."
                if available_count
                else f"No slots available on {day_of_week}."
            ),
            total_slots=len(slots),
            available_slots=available_count,
            slots=slots,
        )

    async def list_booked_slots(self, slot_date: date_type) -> BookedSlotsResponse:
        booked = await self.store.list_booked(slot_date)
        entries = [
            BookedSlotRead(time=format_time(t), display_time=to_display_time(format_time(t)))
            for t in booked
        ]
        return BookedSlotsResponse(
            date=slot_date,
            total_booked=len(entries),
            booked_slots=entries,
        )
