# app/api/routes/internal.py
import logging
from http import HTTPStatus

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from app.api.dependencies.internal_auth import verify_internal_api_key
from app.api.dependencies.services import get_app_settings, get_graph_client
from app.core.config import Settings
from app.services.graph_client import GraphClient, GraphClientError

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/internal",
    tags=["Internal"],
    dependencies=[Depends(verify_internal_api_key)],
)


class GraphDiagnostics(BaseModel):
    """
    Outcome of probing the Graph permissions the booking flow depends on.
    """

    graph_configured: bool = Field(..., description="Whether Graph credentials are set.")
    token_ok: bool = Field(False, description="Client-credentials token could be obtained.")
    organizer: str = Field(..., description="Organizer mailbox that was probed.")
    organizer_lookup_ok: bool = Field(
        False,
        description="GET /users/{organizer} succeeded (User.Read.All granted).",
    )
    organizer_display_name: str | None = None
    errors: list[str] = Field(default_factory=list)


@router.get(
    "/graph-diagnostics",
    response_model=GraphDiagnostics,
    status_code=HTTPStatus.OK,
    summary="Probe Microsoft Graph credentials and organizer lookup",
    description=(
        "Checks that an application token can be obtained and that the organizer "
        "mailbox is visible to the app registration. Does not create any meeting.\n\n"
        "Protected via the `X-Internal-Api-Key` header when configured."
    ),
    responses={
        401: {
            "description": "Missing or invalid internal API key (if configured).",
        },
    },
)
async def graph_diagnostics(
    organizer: str | None = Query(
        default=None,
        description="Mailbox to probe. Defaults to ORGANIZER_EMAIL.",
        example="organizer@example.com",
    ),
    graph: GraphClient | None = Depends(get_graph_client),
    settings: Settings = Depends(get_app_settings),
) -> GraphDiagnostics:
    organizer = organizer or settings.ORGANIZER_EMAIL
    result = GraphDiagnostics(graph_configured=graph is not None, organizer=organizer)

    if graph is None:
        result.errors.append("Graph credentials are not configured; meetings are mocked.")
        return result

    try:
        await graph.get_access_token()
        result.token_ok = True
    except GraphClientError as exc:
        logger.warning("Graph token probe failed: %s", exc)
        result.errors.append(f"token: {exc}")
        return result

    try:
        user = await graph.get_json(f"/v1.0/users/{organizer}")
        result.organizer_lookup_ok = True
        result.organizer_display_name = user.get("displayName")
    except GraphClientError as exc:
        logger.warning("Graph organizer probe failed for %s: %s", organizer, exc)
        result.errors.append(f"organizer lookup (status={exc.status_code}): {exc}")

    return result
