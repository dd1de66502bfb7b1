# app/core/exceptions.py
from __future__ import annotations

from http import HTTPStatus


class SchedulingError(Exception):
    """
    Base class for all domain errors raised by the booking pipeline.

    Each subclass carries a stable machine-readable `code` and the HTTP
    status it maps to at the API boundary.
    """

    code: str = "SchedulingError"
    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR
    default_message: str = "Scheduling request failed."

    def __init__(self, message: str | None = None, *, reason: str | None = None) -> None:
        self.message = message or self.default_message
        self.reason = reason
        super().__init__(self.message)


class InvalidTimeFormat(SchedulingError):
    code = "InvalidTimeFormat"
    status_code = HTTPStatus.BAD_REQUEST
    default_message = "Time must be in 'HH:MM' (24-hour) or 'H:MM AM/PM' (12-hour) format."


class NotAWeekday(SchedulingError):
    code = "NotAWeekday"
    status_code = HTTPStatus.BAD_REQUEST
    default_message = "Meetings can only be scheduled Monday to Friday."


class OutsideBusinessHours(SchedulingError):
    code = "OutsideBusinessHours"
    status_code = HTTPStatus.BAD_REQUEST
    default_message = "Meetings can only be scheduled between 9:00 AM and 6:00 PM."


class PastTimeSlot(SchedulingError):
    code = "PastTimeSlot"
    status_code = HTTPStatus.BAD_REQUEST
    default_message = "The selected time slot is in the past."


class SlotAlreadyBooked(SchedulingError):
    code = "SlotAlreadyBooked"
    status_code = HTTPStatus.BAD_REQUEST
    default_message = "The selected time slot is already booked."


class SlotNotFound(SchedulingError):
    code = "SlotNotFound"
    status_code = HTTPStatus.NOT_FOUND
    default_message = "No booking exists for the given slot."


class MeetingCreationFailed(SchedulingError):
    code = "MeetingCreationFailed"
    status_code = HTTPStatus.INTERNAL_SERVER_ERROR
    default_message = "Failed to create the online meeting."


class NotificationFailed(SchedulingError):
    """
    Per-recipient delivery failure. Collected into notification results,
    never surfaced as a request failure.
    """

    code = "NotificationFailed"
    default_message = "Failed to deliver notification."


class StoreUnavailable(SchedulingError):
    """
    The durable slot store could not be reached. Callers fall back to the
    in-memory store instead of failing the request.
    """

    code = "StoreUnavailable"
    status_code = HTTPStatus.SERVICE_UNAVAILABLE
    default_message = "Slot store is unavailable."
