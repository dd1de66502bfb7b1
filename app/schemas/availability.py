# app/schemas/availability.py
from datetime import date
from enum import Enum

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class SlotReason(str, Enum):
    """
    Reason attached to a slot or to a single availability check.

    Precedence when several conditions fail at once:
    NOT_A_WEEKDAY > OUTSIDE_BUSINESS_HOURS > PAST_TIME_SLOT > ALREADY_BOOKED.
    """

    AVAILABLE = "Available"
    NOT_A_WEEKDAY = "Not a weekday"
    OUTSIDE_BUSINESS_HOURS = "Outside business hours"
    PAST_TIME_SLOT = "Past time slot"
    ALREADY_BOOKED = "Already booked"


class CamelModel(BaseModel):
    """
    Base for payloads exposed with camelCase keys on the wire.
    """

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class TimeSlot(CamelModel):
    """
    One bookable 30-minute start time on a given date. Computed, never stored.
    """

    time: str = Field(..., description="Start time, 24-hour HH:MM.", example="14:00")
    display_time: str = Field(..., description="Start time, 12-hour.", example="2:00 PM")
    available: bool = Field(..., description="True if the slot can be booked.", example=True)
    reason: SlotReason = Field(..., description="Why the slot is or is not available.", example="Available")


class AvailabilityCheck(CamelModel):
    """
    Result of checking a single (date, time) pair.
    """

    available: bool
    message: str
    reason: SlotReason
    date: date
    time: str = Field(..., description="Normalized 24-hour time.", example="14:00")
    display_time: str = Field(..., example="2:00 PM")
    day_of_week: str = Field(..., example="Monday")
    hour: int = Field(..., description="Local hour in the target timezone.", example=14)
    is_weekday: bool
    is_business_hours: bool
    is_future: bool
    is_booked: bool


class DaySlots(CamelModel):
    """
    Every slot for one date, with availability per slot.
    """

    date: date
    day_of_week: str = Field(..., example="Monday")
    timezone: str = Field(..., example="Asia/Calcutta (GMT+5:30)")
    business_hours: str = Field(..., example="9:00 AM - 6:00 PM")
    available: bool = Field(..., description="True if at least one slot is bookable.")
    message: str
    total_slots: int = Field(..., example=18)
    available_slots: int = Field(..., example=12)
    slots: list[TimeSlot] = Field(default_factory=list)


class BookedSlotRead(CamelModel):
    time: str = Field(..., example="10:00")
    display_time: str = Field(..., example="10:00 AM")
    booked: bool = True


class BookedSlotsResponse(CamelModel):
    date: date
    total_booked: int
    booked_slots: list[BookedSlotRead] = Field(default_factory=list)
