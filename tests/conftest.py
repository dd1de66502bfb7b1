# tests/conftest.py
import os
import tempfile
from datetime import datetime

# Settings are read once and cached, so the environment must be prepared
# before anything under `app` is imported.
os.environ.setdefault(
    "DB_URL",
    f"sqlite+aiosqlite:///{os.path.join(tempfile.gettempdir(), 'scheduler_test.db')}",
)
os.environ.setdefault("APP_ENV", "test")
for _var in ("GRAPH_TENANT_ID", "GRAPH_CLIENT_ID", "GRAPH_CLIENT_SECRET", "SMTP_HOST", "INTERNAL_API_KEY"):
    os.environ.pop(_var, None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.core.config import Settings  # noqa: E402
from app.core.constants import TARGET_TIMEZONE  # noqa: E402
from app.core.exceptions import MeetingCreationFailed  # noqa: E402
from app.main import create_app  # noqa: E402
from app.schemas.meeting import MeetingDetails  # noqa: E402
from app.services.email_notifier import MailTransport  # noqa: E402
from app.services.slot_store import InMemorySlotStore  # noqa: E402

# Monday 2025-09-01 08:00 IST: the whole week of 2025-09-08 lies in the future.
FIXED_NOW = datetime(2025, 9, 1, 8, 0, tzinfo=TARGET_TIMEZONE)


class FakeMeetingProvider:
    """
    Records calls and returns a predictable meeting, or raises when
    `fail` is set.
    """

    name = "fake"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    async def create(self, subject, start, end, attendees, organizer_email):
        self.calls.append(
            {
                "subject": subject,
                "start": start,
                "end": end,
                "attendees": list(attendees),
                "organizer_email": organizer_email,
            }
        )
        if self.fail:
            raise MeetingCreationFailed("provider down")
        return MeetingDetails(
            id=f"meeting-{len(self.calls)}",
            join_url="https://teams.example.com/join/abc",
            start_date_time=start,
            end_date_time=end,
            subject=subject,
            provider=self.name,
        )


class RecordingTransport(MailTransport):
    """
    Collects outgoing messages; recipients listed in `failing` raise.
    """

    name = "recording"

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.sent = []

    async def send(self, recipient, content):
        if recipient in self.failing:
            raise RuntimeError(f"mailbox {recipient} rejected the message")
        self.sent.append((recipient, content))


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def slot_store() -> InMemorySlotStore:
    return InMemorySlotStore()


@pytest.fixture
def meeting_provider() -> FakeMeetingProvider:
    return FakeMeetingProvider()


@pytest.fixture
def mail_transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def client(slot_store, meeting_provider, mail_transport, fixed_clock) -> TestClient:
    """
    TestClient over an app wired with an in-memory store, a fixed clock and
    fake external collaborators.
    """
    app = create_app(
        slot_store=slot_store,
        meeting_provider=meeting_provider,
        mail_transport=mail_transport,
        clock=fixed_clock,
    )
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def build_client(slot_store, meeting_provider, mail_transport, fixed_clock):
    """
    Factory for a TestClient over an app built with explicit Settings.
    """
    clients = []

    def _build(**overrides) -> TestClient:
        values = {"APP_ENV": "test", "INTERNAL_API_KEY": None, **overrides}
        app = create_app(
            Settings(_env_file=None, **values),
            slot_store=slot_store,
            meeting_provider=meeting_provider,
            mail_transport=mail_transport,
            clock=fixed_clock,
        )
        test_client = TestClient(app)
        clients.append(test_client)
        return test_client

    yield _build
    for test_client in clients:
        test_client.close()
