# app/api/dependencies/internal_auth.py
import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from app.api.dependencies.services import get_app_settings
from app.core.config import Settings

_OPEN_ENVIRONMENTS = ("local", "test")


async def verify_internal_api_key(
    internal_api_key: Optional[str] = Header(
        default=None,
        alias="X-Internal-Api-Key",
        description="Key guarding the /internal diagnostics endpoints.",
    ),
    settings: Settings = Depends(get_app_settings),
) -> None:
    """
    Guard for /internal routes.

    Local and test environments stay open until INTERNAL_API_KEY is set;
    every other environment requires the key, and a missing configuration
    there is reported as a server error rather than silently opening the
    diagnostics.
    """
    env = (settings.APP_ENV or "local").lower()
    expected = settings.INTERNAL_API_KEY

    if not expected:
        if env in _OPEN_ENVIRONMENTS:
            return
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="INTERNAL_API_KEY not configured for this environment.",
        )

    if not internal_api_key or not secrets.compare_digest(internal_api_key, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing internal API key.",
        )
