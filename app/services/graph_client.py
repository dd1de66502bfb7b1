# app/services/graph_client.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import httpx

from app.core.config import Settings

logger = logging.getLogger(__name__)


class GraphClientError(RuntimeError):
    """
    Raised when the GraphClient cannot obtain an access token or when a
    Graph API call fails in a non-recoverable way.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass
class _TokenState:
    access_token: str
    expires_at: datetime


class GraphClient:
    """
    Minimal Microsoft Graph API client using client-credentials flow.

    Responsibilities
    ----------------
    - Fetch and cache an access token using the OAuth2 client-credentials flow.
    - Provide thin convenience methods for GET/POST requests to Graph.
    - Avoid leaking HTTP client details into the rest of the codebase.

    Notes
    -----
    - Token caching is in-memory for this process only.
    - A small safety margin is applied when calculating token expiry to avoid
      edge cases near expiration.
    - Transport failures and timeouts are reported as GraphClientError.
    """

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        base_url: str = "https://graph.microsoft.com",
        scope: str = "https://graph.microsoft.com/.default",
        timeout_seconds: float = 10.0,
    ) -> None:
        if not tenant_id or not client_id or not client_secret:
            raise ValueError("tenant_id, client_id and client_secret are required")

        self._tenant_id = tenant_id
        self._client_id = client_id
        self._client_secret = client_secret
        self._base_url = base_url.rstrip("/")
        self._scope = scope
        self._timeout_seconds = timeout_seconds

        self._token_state: Optional[_TokenState] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "GraphClient":
        return cls(
            tenant_id=settings.GRAPH_TENANT_ID or "",
            client_id=settings.GRAPH_CLIENT_ID or "",
            client_secret=settings.GRAPH_CLIENT_SECRET or "",
            base_url=str(settings.GRAPH_BASE_URL or "https://graph.microsoft.com"),
            timeout_seconds=settings.EXTERNAL_CALL_TIMEOUT_SECONDS,
        )

    @property
    def token_url(self) -> str:
        """
        Returns the OAuth2 token endpoint for the configured tenant.
        """
        return f"https://login.microsoftonline.com/{self._tenant_id}/oauth2/v2.0/token"

    async def _fetch_token(self) -> _TokenState:
        """
        Fetch a fresh access token from Azure AD using client credentials.
        """
        data = {
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "grant_type": "client_credentials",
            "scope": self._scope,
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                resp = await client.post(self.token_url, data=data)
        except httpx.HTTPError as exc:
            raise GraphClientError(f"Token request failed: {exc}") from exc

        if resp.status_code != 200:
            raise GraphClientError(
                f"Failed to obtain Graph token (status={resp.status_code}): {resp.text}",
                status_code=resp.status_code,
            )

        payload = resp.json()
        access_token = payload.get("access_token")
        expires_in = payload.get("expires_in")

        if not access_token or not isinstance(expires_in, (int, float)):
            raise GraphClientError(
                "Invalid token response from Azure AD (missing access_token/expires_in)"
            )

        # Apply a small safety margin so we refresh slightly before real expiry.
        now = datetime.now(tz=timezone.utc)
        safety_margin = 60  # seconds
        expires_at = now + timedelta(seconds=float(expires_in) - safety_margin)

        logger.debug("Obtained Graph access token (expires in %ss)", expires_in)
        return _TokenState(access_token=access_token, expires_at=expires_at)

    async def get_access_token(self) -> str:
        """
        Return a valid access token, using a cached value if still valid.
        """
        now = datetime.now(tz=timezone.utc)
        if self._token_state and self._token_state.expires_at > now:
            return self._token_state.access_token

        self._token_state = await self._fetch_token()
        return self._token_state.access_token

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> httpx.Response:
        """
        Low-level helper for issuing an authenticated HTTP request to Graph.

        `path` is either an absolute URL or a path relative to base_url,
        e.g. ``/v1.0/users/{id}/onlineMeetings``.
        """
        token = await self.get_access_token()

        if path.startswith("http://") or path.startswith("https://"):
            url = path
        else:
            url = f"{self._base_url.rstrip('/')}/{path.lstrip('/')}"

        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                resp = await client.request(
                    method=method.upper(),
                    url=url,
                    headers=headers,
                    params=params,
                    json=json,
                )
        except httpx.HTTPError as exc:
            raise GraphClientError(f"Graph {method.upper()} {url} failed: {exc}") from exc

        return resp

    @staticmethod
    def _raise_for_status(method: str, resp: httpx.Response) -> None:
        if resp.status_code // 100 != 2:
            raise GraphClientError(
                f"Graph {method} failed (status={resp.status_code}): {resp.text}",
                status_code=resp.status_code,
            )

    async def get_json(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Issue a GET request to a Graph endpoint and return the JSON payload.

        Raises GraphClientError on non-2xx responses.
        """
        resp = await self._request("GET", path, params=params)
        self._raise_for_status("GET", resp)
        return resp.json()

    async def post_json(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Dict[str, Any]:
        """
        Issue a POST request to a Graph endpoint and return the JSON payload.

        Endpoints such as ``sendMail`` answer 202 with an empty body; an
        empty dict is returned in that case.
        """
        resp = await self._request("POST", path, params=params, json=json)
        self._raise_for_status("POST", resp)
        if resp.status_code == 202 or not resp.text:
            return {}
        return resp.json()
