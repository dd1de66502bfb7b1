# app/services/booking.py
from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta

from app.core.constants import MEETING_DURATION_MINUTES, TARGET_TIMEZONE
from app.core.exceptions import (
    MeetingCreationFailed,
    NotAWeekday,
    OutsideBusinessHours,
    PastTimeSlot,
    SchedulingError,
    SlotAlreadyBooked,
)
from app.schemas.availability import SlotReason
from app.schemas.booking import (
    BookingResponse,
    CreateMeetingRequest,
    DiscoveryCallRequest,
    NotificationResult,
)
from app.schemas.meeting import MeetingDetails, MeetingSummary
from app.services.availability import AvailabilityEngine
from app.services.business_rules import BusinessRulesEvaluator
from app.services.email_notifier import BookingEmailContext, Notifier
from app.services.meeting_provider import MeetingProvider
from app.services.slot_store import SlotStore
from app.services.time_normalizer import normalize_to_24_hour, parse_time, to_display_time

logger = logging.getLogger(__name__)

_REJECTIONS: dict[SlotReason, type[SchedulingError]] = {
    SlotReason.NOT_A_WEEKDAY: NotAWeekday,
    SlotReason.OUTSIDE_BUSINESS_HOURS: OutsideBusinessHours,
    SlotReason.PAST_TIME_SLOT: PastTimeSlot,
    SlotReason.ALREADY_BOOKED: SlotAlreadyBooked,
}


def _unique(emails: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for email in emails:
        key = email.lower()
        if key not in seen:
            seen.add(key)
            ordered.append(email)
    return ordered


def name_from_email(email: str) -> str:
    """
    Best-effort display name for guests we only know by address:
    ``jane.doe@x.com`` -> ``Jane Doe``.
    """
    local = email.split("@", 1)[0]
    return " ".join(part.capitalize() for part in local.split(".") if part)


class BookingOrchestrator:
    """
    Books a discovery call end to end.

    Order of operations
    -------------------
    1) Normalize the requested time.
    2) Validate against business rules and existing bookings (no side effects).
    3) Create the meeting through the MeetingProvider (bounded by a timeout).
    4) Reserve the slot in the SlotStore.
    5) Send confirmation / organizer / admin emails; failures are collected.

    A meeting is never created for a request that fails validation, and a
    slot is never reserved if meeting creation fails. If the reserve in
    step 4 loses a race, the provider meeting already exists; that case is
    logged and reported as SlotAlreadyBooked.
    """

    def __init__(
        self,
        availability: AvailabilityEngine,
        meeting_provider: MeetingProvider,
        notifier: Notifier,
        *,
        default_organizer_email: str,
        admin_email: str | None,
        meeting_subject: str = "Discovery Call",
        timeout_seconds: float = 15.0,
    ) -> None:
        self.availability = availability
        self.meeting_provider = meeting_provider
        self.notifier = notifier
        self.default_organizer_email = default_organizer_email
        self.admin_email = admin_email
        self.meeting_subject = meeting_subject
        self.timeout_seconds = timeout_seconds

    @property
    def store(self) -> SlotStore:
        return self.availability.store

    async def _create_meeting(
        self,
        subject: str,
        start: datetime,
        end: datetime,
        attendees: Sequence[str],
        organizer_email: str,
    ) -> MeetingDetails:
        try:
            return await asyncio.wait_for(
                self.meeting_provider.create(subject, start, end, attendees, organizer_email),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            logger.error("Meeting creation timed out after %ss", self.timeout_seconds)
            raise MeetingCreationFailed(
                f"Meeting provider did not respond within {self.timeout_seconds}s"
            ) from exc
        except MeetingCreationFailed:
            raise
        except Exception as exc:
            logger.exception("Unexpected error from meeting provider %s", self.meeting_provider.name)
            raise MeetingCreationFailed(str(exc)) from exc

    async def _notify_participants(
        self,
        ctx: BookingEmailContext,
        attendees: Sequence[str],
        *,
        notify_staff: bool,
    ) -> list[NotificationResult]:
        sends = []
        user = ctx.user_details
        for email in attendees:
            if user is not None and email.lower() == user.email.lower():
                name = user.full_name
            else:
                name = name_from_email(email)
            sends.append(self.notifier.send_confirmation(ctx, email, name))

        if notify_staff and ctx.organizer_email:
            sends.append(self.notifier.send_organizer_notification(ctx, ctx.organizer_email))
            if self.admin_email and self.admin_email.lower() != ctx.organizer_email.lower():
                sends.append(self.notifier.send_admin_notification(ctx, self.admin_email))

        return list(await asyncio.gather(*sends))

    async def schedule_discovery_call(self, request: DiscoveryCallRequest) -> BookingResponse:
        """
        Validate, create the meeting, reserve the slot and notify everyone.

        Raises
        ------
        InvalidTimeFormat, NotAWeekday, OutsideBusinessHours, PastTimeSlot,
        SlotAlreadyBooked
            Validation failures, raised before any external call.
        MeetingCreationFailed
            The provider failed or timed out; nothing was reserved.
        """
        time24h = normalize_to_24_hour(request.selected_time)
        slot_date = request.selected_date
        slot_time = parse_time(time24h)

        check = await self.availability.check_availability(slot_date, time24h)
        if not check.available:
            logger.info(
                "Rejected booking for %s %s: %s", slot_date, time24h, check.reason.value
            )
            raise _REJECTIONS[check.reason](check.message, reason=check.reason.value)

        start = BusinessRulesEvaluator.slot_start(slot_date, slot_time)
        end = start + timedelta(minutes=MEETING_DURATION_MINUTES)
        organizer_email = request.organizer_email or self.default_organizer_email
        attendees = _unique([request.user_details.email, *request.guest_emails])

        meeting = await self._create_meeting(
            self.meeting_subject, start, end, attendees, organizer_email
        )

        try:
            await self.store.reserve(slot_date, slot_time, meeting_id=meeting.id)
        except SlotAlreadyBooked:
            logger.error(
                "Slot %s %s was taken while meeting %s was being created; "
                "the provider meeting is left orphaned",
                slot_date,
                time24h,
                meeting.id,
            )
            raise

        logger.info(
            "Booked %s %s for %s (meeting %s via %s)",
            slot_date,
            time24h,
            request.user_details.email,
            meeting.id,
            meeting.provider,
        )

        ctx = BookingEmailContext(
            subject=self.meeting_subject,
            date_label=slot_date.isoformat(),
            time_label=to_display_time(time24h),
            join_url=meeting.join_url,
            user_details=request.user_details,
            guest_emails=[e for e in attendees if e.lower() != request.user_details.email.lower()],
            organizer_email=organizer_email,
        )
        results = await self._notify_participants(ctx, attendees, notify_staff=True)

        return BookingResponse(
            success=True,
            message="Discovery call scheduled successfully",
            meeting=MeetingSummary.from_details(meeting),
            email_sent=any(r.success for r in results),
            email_results=results,
        )

    async def create_meeting(self, request: CreateMeetingRequest) -> BookingResponse:
        """
        Create an ad-hoc meeting with explicit start/end instants.

        No slot rules are applied and nothing is reserved; naive instants are
        interpreted in the target timezone.
        """
        start = request.start_time
        end = request.end_time
        if start.tzinfo is None:
            start = start.replace(tzinfo=TARGET_TIMEZONE)
        if end.tzinfo is None:
            end = end.replace(tzinfo=TARGET_TIMEZONE)

        organizer_email = request.organizer_email or self.default_organizer_email
        attendees = _unique(request.attendees)

        meeting = await self._create_meeting(
            request.subject, start, end, attendees, organizer_email
        )

        recipients = attendees
        if request.user_details is not None:
            recipients = _unique([request.user_details.email, *attendees])

        local_start = start.astimezone(TARGET_TIMEZONE)
        duration = int((end - start).total_seconds() // 60)
        ctx = BookingEmailContext(
            subject=request.subject,
            date_label=local_start.date().isoformat(),
            time_label=to_display_time(local_start.strftime("%H:%M")),
            join_url=meeting.join_url,
            user_details=request.user_details,
            organizer_email=organizer_email,
            duration_label=f"{duration} minutes",
        )
        results = await self._notify_participants(ctx, recipients, notify_staff=False)

        return BookingResponse(
            success=True,
            message="Meeting created successfully",
            meeting=MeetingSummary.from_details(meeting),
            email_sent=any(r.success for r in results),
            email_results=results,
        )
