# app/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from app.api.errors import register_exception_handlers
from app.api.routes import health, internal, scheduling
from app.core.config import Settings, get_settings
from app.core.logging_config import configure_logging
from app.db.session import AsyncSessionLocal, init_db_for_startup
from app.services.availability import AvailabilityEngine, Clock, default_clock
from app.services.booking import BookingOrchestrator
from app.services.email_notifier import MailTransport, Notifier, build_mail_transport
from app.services.graph_client import GraphClient
from app.services.meeting_provider import GraphMeetingProvider, MeetingProvider, MockMeetingProvider
from app.services.slot_store import (
    DatabaseSlotStore,
    FailoverSlotStore,
    InMemorySlotStore,
    SlotStore,
)

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    slot_store: SlotStore | None = None,
    meeting_provider: MeetingProvider | None = None,
    mail_transport: MailTransport | None = None,
    clock: Clock = default_clock,
) -> FastAPI:
    """
    Application factory for the Discovery Call Scheduler service.

    Collaborators are built from settings unless passed in explicitly, which
    is how tests swap in an in-memory store, a fixed clock, or fake
    provider/transport implementations.
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Backend for booking discovery calls: checks slot availability,\n"
            "creates Microsoft Teams meetings through Microsoft Graph, reserves\n"
            "the slot and emails the requester, guests, organizer and admin."
        ),
        version="0.1.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    graph_client = GraphClient.from_settings(settings) if settings.graph_configured else None

    manage_schema = slot_store is None
    if slot_store is None:
        slot_store = FailoverSlotStore(
            primary=DatabaseSlotStore(AsyncSessionLocal),
            fallback=InMemorySlotStore(),
            retry_after_seconds=settings.SLOT_STORE_RETRY_SECONDS,
        )

    if meeting_provider is None:
        if graph_client is not None:
            meeting_provider = GraphMeetingProvider(graph_client)
        else:
            logger.warning("Graph credentials not configured; meetings will be mocked")
            meeting_provider = MockMeetingProvider()

    if mail_transport is None:
        mail_transport = build_mail_transport(settings, graph_client)

    availability_engine = AvailabilityEngine(slot_store, clock=clock)
    notifier = Notifier(mail_transport, timeout_seconds=settings.EXTERNAL_CALL_TIMEOUT_SECONDS)

    app.state.settings = settings
    app.state.graph_client = graph_client
    app.state.slot_store = slot_store
    app.state.meeting_provider = meeting_provider
    app.state.availability_engine = availability_engine
    app.state.booking_orchestrator = BookingOrchestrator(
        availability_engine,
        meeting_provider,
        notifier,
        default_organizer_email=settings.ORGANIZER_EMAIL,
        admin_email=settings.ADMIN_EMAIL,
        meeting_subject=settings.MEETING_SUBJECT,
        timeout_seconds=settings.EXTERNAL_CALL_TIMEOUT_SECONDS,
    )

    register_exception_handlers(app)

    # Routers
    app.include_router(health.router)
    app.include_router(scheduling.router)
    app.include_router(internal.router)

    @app.on_event("startup")
    async def on_startup() -> None:  # pragma: no cover
        if not manage_schema:
            return
        try:
            await init_db_for_startup()
        except (SQLAlchemyError, OSError) as exc:
            slot_store.mark_degraded(exc)
        logger.info(
            "%s started (env=%s, slot store=%s, meeting provider=%s, mail=%s)",
            settings.APP_NAME,
            settings.APP_ENV,
            slot_store.name,
            meeting_provider.name,
            mail_transport.name,
        )

    return app


app = create_app()
