# app/services/meeting_provider.py
from __future__ import annotations

import logging
import secrets
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from app.core.exceptions import MeetingCreationFailed
from app.schemas.meeting import MeetingDetails
from app.services.graph_client import GraphClient, GraphClientError

logger = logging.getLogger(__name__)


class MeetingProvider(ABC):
    """
    Capability interface for creating an online meeting.

    Implementations raise MeetingCreationFailed when no meeting could be
    created; callers never see provider specific errors.
    """

    name: str = "abstract"

    @abstractmethod
    async def create(
        self,
        subject: str,
        start: datetime,
        end: datetime,
        attendees: Sequence[str],
        organizer_email: str,
    ) -> MeetingDetails:
        ...


class MockMeetingProvider(MeetingProvider):
    """
    Used when Graph credentials are not configured. Produces a synthetic
    meeting with a Teams-style join URL so the booking flow still works in
    local development.
    """

    name = "mock"

    async def create(
        self,
        subject: str,
        start: datetime,
        end: datetime,
        attendees: Sequence[str],
        organizer_email: str,
    ) -> MeetingDetails:
        meeting_id = secrets.token_hex(8)
        logger.info("Creating mock meeting %s for organizer %s", meeting_id, organizer_email)
        return MeetingDetails(
            id=meeting_id,
            join_url=(
                f"https://teams.microsoft.com/l/meetup-join/19:meeting_{meeting_id}@thread.v2/0"
            ),
            start_date_time=start,
            end_date_time=end,
            subject=subject,
            provider=self.name,
        )


@dataclass(frozen=True)
class MeetingRequestContext:
    subject: str
    start: datetime
    end: datetime
    attendees: tuple[str, ...]
    organizer_upn: str
    organizer_id: str

    @property
    def start_utc(self) -> str:
        return self.start.astimezone(timezone.utc).isoformat()

    @property
    def end_utc(self) -> str:
        return self.end.astimezone(timezone.utc).isoformat()


StrategyFn = Callable[[GraphClient, MeetingRequestContext], Awaitable[dict]]


@dataclass(frozen=True)
class CreationStrategy:
    name: str
    run: StrategyFn


def _online_meeting_body(ctx: MeetingRequestContext) -> dict:
    return {
        "subject": ctx.subject,
        "startDateTime": ctx.start_utc,
        "endDateTime": ctx.end_utc,
        "participants": {
            "attendees": [{"upn": email, "role": "attendee"} for email in ctx.attendees]
        },
    }


async def _online_meeting_by_user_id(graph: GraphClient, ctx: MeetingRequestContext) -> dict:
    return await graph.post_json(
        f"/v1.0/users/{ctx.organizer_id}/onlineMeetings", json=_online_meeting_body(ctx)
    )


async def _online_meeting_by_upn(graph: GraphClient, ctx: MeetingRequestContext) -> dict:
    return await graph.post_json(
        f"/v1.0/users/{ctx.organizer_upn}/onlineMeetings", json=_online_meeting_body(ctx)
    )


async def _beta_online_meeting(graph: GraphClient, ctx: MeetingRequestContext) -> dict:
    return await graph.post_json(
        f"/beta/users/{ctx.organizer_id}/onlineMeetings", json=_online_meeting_body(ctx)
    )


async def _calendar_event(graph: GraphClient, ctx: MeetingRequestContext) -> dict:
    body = {
        "subject": ctx.subject,
        "start": {"dateTime": ctx.start_utc, "timeZone": "UTC"},
        "end": {"dateTime": ctx.end_utc, "timeZone": "UTC"},
        "attendees": [
            {"emailAddress": {"address": email}, "type": "required"}
            for email in ctx.attendees
        ],
        "isOnlineMeeting": True,
        "onlineMeetingProvider": "teamsForBusiness",
    }
    return await graph.post_json(f"/v1.0/users/{ctx.organizer_id}/events", json=body)


DEFAULT_STRATEGIES: tuple[CreationStrategy, ...] = (
    CreationStrategy("online_meeting_by_user_id", _online_meeting_by_user_id),
    CreationStrategy("online_meeting_by_upn", _online_meeting_by_upn),
    CreationStrategy("beta_online_meeting", _beta_online_meeting),
    CreationStrategy("calendar_event", _calendar_event),
)


def _extract_join_url(payload: dict[str, Any]) -> str | None:
    online_meeting = payload.get("onlineMeeting") or {}
    return (
        payload.get("joinUrl")
        or payload.get("joinWebUrl")
        or online_meeting.get("joinUrl")
        or payload.get("onlineMeetingUrl")
    )


class GraphMeetingProvider(MeetingProvider):
    """
    Creates Teams meetings through Microsoft Graph.

    Graph permissions differ between tenants, so creation walks an ordered
    list of strategies and returns the first one that succeeds:

    1) POST /v1.0/users/{id}/onlineMeetings
    2) POST /v1.0/users/{upn}/onlineMeetings
    3) POST /beta/users/{id}/onlineMeetings
    4) POST /v1.0/users/{id}/events with isOnlineMeeting

    The strategy list is injectable.
    """

    name = "graph"

    def __init__(
        self,
        graph_client: GraphClient,
        strategies: Sequence[CreationStrategy] = DEFAULT_STRATEGIES,
    ) -> None:
        if not strategies:
            raise ValueError("at least one creation strategy is required")
        self.graph = graph_client
        self.strategies = tuple(strategies)

    async def _resolve_organizer_id(self, organizer_email: str) -> str:
        """
        Look up the organizer's object id; fall back to the UPN, which Graph
        accepts in the same path position.
        """
        try:
            user = await self.graph.get_json(f"/v1.0/users/{organizer_email}")
        except GraphClientError as exc:
            logger.warning(
                "Could not resolve organizer %s (status=%s); using UPN as id",
                organizer_email,
                exc.status_code,
            )
            return organizer_email
        return user.get("id") or organizer_email

    async def create(
        self,
        subject: str,
        start: datetime,
        end: datetime,
        attendees: Sequence[str],
        organizer_email: str,
    ) -> MeetingDetails:
        ctx = MeetingRequestContext(
            subject=subject,
            start=start,
            end=end,
            attendees=tuple(attendees),
            organizer_upn=organizer_email,
            organizer_id=await self._resolve_organizer_id(organizer_email),
        )

        last_error: GraphClientError | None = None
        for strategy in self.strategies:
            try:
                payload = await strategy.run(self.graph, ctx)
            except GraphClientError as exc:
                logger.info(
                    "Meeting strategy %s failed (status=%s): %s",
                    strategy.name,
                    exc.status_code,
                    exc,
                )
                last_error = exc
                continue

            logger.info("Meeting created via %s for organizer %s", strategy.name, organizer_email)
            return MeetingDetails(
                id=str(payload.get("id") or secrets.token_hex(8)),
                join_url=_extract_join_url(payload),
                start_date_time=start,
                end_date_time=end,
                subject=subject,
                provider=strategy.name,
                raw=payload,
            )

        status = last_error.status_code if last_error else None
        if status == 403:
            logger.error(
                "Graph denied meeting creation. Grant admin consent for "
                "OnlineMeetings.ReadWrite.All, User.Read.All and Calendars.ReadWrite."
            )
        elif status == 404:
            logger.error(
                "Organizer %s not found or has no Teams license.", organizer_email
            )
        raise MeetingCreationFailed(
            f"Failed to create meeting for {organizer_email}: {last_error}"
        )
