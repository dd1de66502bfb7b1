# app/schemas/booking.py
from datetime import date, datetime
from enum import Enum

from pydantic import Field, ValidationInfo, field_validator

from app.schemas.availability import CamelModel
from app.schemas.meeting import MeetingSummary


def _check_email(value: str) -> str:
    value = value.strip()
    if "@" not in value or value.startswith("@") or value.endswith("@"):
        raise ValueError(f"Invalid email address: {value!r}")
    return value


class UserDetails(CamelModel):
    """
    Contact details of the person requesting the discovery call.
    """

    first_name: str = Field(..., example="John")
    last_name: str = Field("", example="Doe")
    email: str = Field(..., example="john.doe@example.com")
    company_name: str | None = Field(None, example="Test Company")
    revenue: str | None = Field(None, example="500,000 - 1M")
    phone: str | None = None

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: str) -> str:
        return _check_email(value)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class DiscoveryCallRequest(CamelModel):
    """
    Payload of POST /api/schedule-discovery-call.
    """

    selected_date: date = Field(..., example="2025-09-08")
    selected_time: str = Field(
        ...,
        description="Either 24-hour `HH:MM` or 12-hour `H:MM AM/PM`.",
        example="2:00 PM",
    )
    user_details: UserDetails
    guest_emails: list[str] = Field(default_factory=list)
    organizer_email: str | None = Field(
        None,
        description="Organizer mailbox; defaults to the configured ORGANIZER_EMAIL.",
    )

    @field_validator("guest_emails")
    @classmethod
    def _validate_guests(cls, value: list[str]) -> list[str]:
        return [_check_email(v) for v in value]

    @field_validator("organizer_email")
    @classmethod
    def _validate_organizer(cls, value: str | None) -> str | None:
        return _check_email(value) if value else None


class CreateMeetingRequest(CamelModel):
    """
    Payload of POST /api/create-meeting: an ad-hoc meeting with explicit
    start/end instants, bypassing slot rules and reservation.
    """

    subject: str = Field(..., min_length=1)
    start_time: datetime
    end_time: datetime
    attendees: list[str] = Field(..., min_length=1)
    organizer_email: str | None = None
    user_details: UserDetails | None = None

    @field_validator("attendees")
    @classmethod
    def _validate_attendees(cls, value: list[str]) -> list[str]:
        return [_check_email(v) for v in value]

    @field_validator("organizer_email")
    @classmethod
    def _validate_organizer(cls, value: str | None) -> str | None:
        return _check_email(value) if value else None

    @field_validator("end_time")
    @classmethod
    def _validate_end_after_start(cls, value: datetime, info: ValidationInfo) -> datetime:
        start = info.data.get("start_time")
        if start is not None and (start.tzinfo is None) == (value.tzinfo is None) and value <= start:
            raise ValueError("endTime must be after startTime")
        return value


class NotificationType(str, Enum):
    CONFIRMATION = "confirmation"
    ORGANIZER = "organizer_notification"
    ADMIN = "admin_notification"


class NotificationResult(CamelModel):
    recipient: str
    type: NotificationType
    success: bool
    error: str | None = None


class BookingResponse(CamelModel):
    """
    Response of the booking endpoints. Notification failures appear in
    `email_results` and never flip `success`.
    """

    success: bool = True
    message: str
    meeting: MeetingSummary
    email_sent: bool
    email_results: list[NotificationResult] = Field(default_factory=list)
