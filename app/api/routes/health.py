# app/api/routes/health.py
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from app.api.dependencies.services import get_app_settings
from app.core.config import Settings


router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """
    Response schema for the health check endpoint.
    """

    status: str = Field(
        ...,
        description="Overall health status of the scheduler service.",
        example="ok",
    )
    app_name: str = Field(
        ...,
        description="Human-friendly name of the running application.",
        example="Discovery Call Scheduler",
    )
    environment: str = Field(
        ...,
        description="Current deployment environment (local/dev/stage/prod).",
        example="local",
    )
    slot_store: str = Field(
        ...,
        description=(
            "Backend taking new bookings: `database`, or `memory` while the "
            "database is unavailable and waiting to be retried."
        ),
        example="database",
    )
    meeting_provider: str = Field(
        ...,
        description="`graph` when Microsoft Graph is configured, otherwise `mock`.",
        example="graph",
    )
    timestamp_utc: datetime = Field(
        ...,
        description="Server-side timestamp (UTC) at which this health check was generated.",
        example="2025-01-01T10:30:00Z",
    )


class ServiceInfo(BaseModel):
    message: str
    endpoints: dict[str, str]


@router.get(
    "/",
    response_model=ServiceInfo,
    summary="Service banner with the list of public endpoints",
)
async def root(settings: Settings = Depends(get_app_settings)) -> ServiceInfo:
    return ServiceInfo(
        message=f"{settings.APP_NAME} API is running",
        endpoints={
            "health": "GET /health",
            "checkAvailability": "GET /api/check-availability?date=YYYY-MM-DD&time=HH:MM",
            "availableSlots": "GET /api/available-slots?date=YYYY-MM-DD",
            "bookedSlots": "GET /api/booked-slots?date=YYYY-MM-DD",
            "scheduleDiscoveryCall": "POST /api/schedule-discovery-call",
            "createMeeting": "POST /api/create-meeting",
        },
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check for the scheduler service",
    description=(
        "Lightweight endpoint to verify that the scheduler backend is "
        "up and responding.\n\n"
        "Typical use-cases:\n"
        "- Kubernetes / Docker / VM health probes\n"
        "- Uptime monitoring & alerting\n"
        "- Spotting a service that fell back to the in-memory slot store\n"
    ),
    responses={
        200: {
            "description": "Service is healthy and responding as expected.",
            "content": {
                "application/json": {
                    "example": {
                        "status": "ok",
                        "app_name": "Discovery Call Scheduler",
                        "environment": "local",
                        "slot_store": "database",
                        "meeting_provider": "graph",
                        "timestamp_utc": "2025-01-01T10:30:00Z",
                    }
                }
            },
        }
    },
)
async def health_check(
    request: Request,
    settings: Settings = Depends(get_app_settings),
) -> HealthResponse:
    """
    Returns the current health status of the service.

    This endpoint does **not** call external systems (DB, Graph API, etc.)
    so that it remains reliable even when downstream components are
    degraded. A degraded slot store is reported as `status="degraded"`.
    """
    store = request.app.state.slot_store
    degraded = bool(getattr(store, "degraded", False))
    return HealthResponse(
        status="degraded" if degraded else "ok",
        app_name=settings.APP_NAME,
        environment=settings.APP_ENV,
        slot_store=store.name,
        meeting_provider=request.app.state.meeting_provider.name,
        timestamp_utc=datetime.now(tz=timezone.utc),
    )
