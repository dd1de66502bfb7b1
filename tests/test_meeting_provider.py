# tests/test_meeting_provider.py
from datetime import datetime

import pytest

from app.core.constants import TARGET_TIMEZONE
from app.core.exceptions import MeetingCreationFailed
from app.services.graph_client import GraphClientError
from app.services.meeting_provider import (
    CreationStrategy,
    GraphMeetingProvider,
    MockMeetingProvider,
)

START = datetime(2025, 9, 8, 14, 0, tzinfo=TARGET_TIMEZONE)
END = datetime(2025, 9, 8, 14, 30, tzinfo=TARGET_TIMEZONE)


class FakeGraphClient:
    """
    Stub for GraphClient: answers user lookups and fails POSTs to any path
    listed in `failing_paths` with the given status.
    """

    def __init__(self, user=None, failing_paths=(), status_code=403, responses=None):
        self.user = user if user is not None else {"id": "user-guid", "displayName": "Org"}
        self.failing_paths = set(failing_paths)
        self.status_code = status_code
        self.responses = responses or {}
        self.posts = []

    async def get_json(self, path, params=None):
        if self.user is False:
            raise GraphClientError("not found", status_code=404)
        return self.user

    async def post_json(self, path, params=None, json=None):
        self.posts.append((path, json))
        if path in self.failing_paths:
            raise GraphClientError(f"{path} denied", status_code=self.status_code)
        return self.responses.get(path, {"id": "meeting-123", "joinUrl": "https://teams/join/123"})


async def test_first_strategy_success_short_circuits():
    graph = FakeGraphClient()
    provider = GraphMeetingProvider(graph)

    meeting = await provider.create("Discovery Call", START, END, ["a@example.com"], "org@example.com")

    assert meeting.id == "meeting-123"
    assert meeting.join_url == "https://teams/join/123"
    assert meeting.provider == "online_meeting_by_user_id"
    assert len(graph.posts) == 1

    path, body = graph.posts[0]
    assert path == "/v1.0/users/user-guid/onlineMeetings"
    assert body["participants"]["attendees"] == [{"upn": "a@example.com", "role": "attendee"}]
    # Sent as UTC: 14:00 IST == 08:30 UTC
    assert body["startDateTime"].startswith("2025-09-08T08:30:00")


async def test_falls_through_to_calendar_event():
    graph = FakeGraphClient(
        failing_paths={
            "/v1.0/users/user-guid/onlineMeetings",
            "/v1.0/users/org@example.com/onlineMeetings",
            "/beta/users/user-guid/onlineMeetings",
        },
        responses={
            "/v1.0/users/user-guid/events": {
                "id": "event-9",
                "onlineMeeting": {"joinUrl": "https://teams/join/event-9"},
            }
        },
    )
    provider = GraphMeetingProvider(graph)

    meeting = await provider.create("Discovery Call", START, END, ["a@example.com"], "org@example.com")

    assert meeting.provider == "calendar_event"
    assert meeting.id == "event-9"
    assert meeting.join_url == "https://teams/join/event-9"
    assert len(graph.posts) == 4
    event_body = graph.posts[-1][1]
    assert event_body["isOnlineMeeting"] is True
    assert event_body["attendees"][0]["emailAddress"]["address"] == "a@example.com"


async def test_unresolvable_organizer_uses_upn_in_path():
    graph = FakeGraphClient(user=False)
    provider = GraphMeetingProvider(graph)

    await provider.create("Discovery Call", START, END, [], "org@example.com")

    assert graph.posts[0][0] == "/v1.0/users/org@example.com/onlineMeetings"


async def test_all_strategies_failing_raises_meeting_creation_failed():
    async def always_fails(graph, ctx):
        raise GraphClientError("denied", status_code=403)

    provider = GraphMeetingProvider(
        FakeGraphClient(),
        strategies=[CreationStrategy("a", always_fails), CreationStrategy("b", always_fails)],
    )

    with pytest.raises(MeetingCreationFailed):
        await provider.create("Discovery Call", START, END, ["a@example.com"], "org@example.com")


def test_empty_strategy_list_is_rejected():
    with pytest.raises(ValueError):
        GraphMeetingProvider(FakeGraphClient(), strategies=[])


async def test_mock_provider_returns_join_url():
    meeting = await MockMeetingProvider().create("Discovery Call", START, END, [], "org@example.com")

    assert meeting.provider == "mock"
    assert meeting.join_url.startswith("https://teams.microsoft.com/l/meetup-join/")
    assert meeting.start_date_time == START
    assert meeting.end_date_time == END
