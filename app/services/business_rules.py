# app/services/business_rules.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date as date_type, datetime, time

from app.core.constants import BUSINESS_END_HOUR, BUSINESS_START_HOUR, TARGET_TIMEZONE


@dataclass(frozen=True)
class BusinessRuleEvaluation:
    """
    Result of evaluating a single (date, time) pair against the fixed
    booking rules.
    """

    day_of_week: str
    hour: int
    is_weekday: bool
    is_business_hours: bool
    is_future: bool


class BusinessRulesEvaluator:
    """
    Applies the static booking rules to a date and time.

    Rules
    -----
    1) Weekday         => ISO weekday 1..5, computed from the calendar date only
    2) Business hours  => 9 <= local hour < 18 in UTC+5:30
    3) Future          => composed instant strictly later than `now`

    The evaluator is pure: the evaluation instant is always passed in.
    """

    @staticmethod
    def slot_start(slot_date: date_type, slot_time: time) -> datetime:
        """
        Compose the slot start instant in the target timezone.
        """
        return datetime.combine(slot_date, slot_time, tzinfo=TARGET_TIMEZONE)

    @staticmethod
    def is_weekday(slot_date: date_type) -> bool:
        return slot_date.isoweekday() <= 5

    @staticmethod
    def evaluate(
        slot_date: date_type,
        slot_time: time,
        now: datetime,
    ) -> BusinessRuleEvaluation:
        start = BusinessRulesEvaluator.slot_start(slot_date, slot_time)
        local_hour = start.astimezone(TARGET_TIMEZONE).hour

        return BusinessRuleEvaluation(
            day_of_week=slot_date.strftime("%A"),
            hour=local_hour,
            is_weekday=BusinessRulesEvaluator.is_weekday(slot_date),
            is_business_hours=BUSINESS_START_HOUR <= local_hour < BUSINESS_END_HOUR,
            is_future=start > now,
        )
