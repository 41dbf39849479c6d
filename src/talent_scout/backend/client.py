"""
Async client for the hosted backend (PostgREST tables + GoTrue auth).

Every method performs exactly one HTTP request and either returns the decoded
JSON payload or raises BackendError carrying the HTTP status and the
backend's error code. Retries are the caller's concern (see core.retry).

Usage:
    async with BackendClient(url=settings.supabase_url, api_key=settings.supabase_anon_key) as backend:
        rows = await backend.select("players", filters={"id": eq(player_id)})
"""

import logging
from typing import Any

import httpx

from ..core.config import Settings
from ..core.errors import InvalidConfigurationError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class BackendError(Exception):
    """Structured failure returned by the backend or raised by the transport."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: Any = None,
        details: Any = None,
        hint: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details
        self.hint = hint

    @classmethod
    def from_response(cls, response: httpx.Response) -> "BackendError":
        """Build from a PostgREST or GoTrue error body."""
        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, dict):
            return cls(
                f"HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        message = (
            body.get("message")
            or body.get("msg")
            or body.get("error_description")
            or body.get("error")
            or f"HTTP {response.status_code}"
        )
        # GoTrue: {"error_code": "invalid_credentials"} or {"error": "invalid_grant"}
        code = body.get("error_code") or body.get("code")
        if code is None and isinstance(body.get("error"), str):
            code = body["error"]
        return cls(
            message,
            status_code=response.status_code,
            code=code,
            details=body.get("details"),
            hint=body.get("hint"),
        )


# ---------------------------------------------------------------------------
# PostgREST filter helpers
# ---------------------------------------------------------------------------


def eq(value: Any) -> str:
    return f"eq.{value}"


def neq(value: Any) -> str:
    return f"neq.{value}"


def gt(value: Any) -> str:
    return f"gt.{value}"


def gte(value: Any) -> str:
    return f"gte.{value}"


def lte(value: Any) -> str:
    return f"lte.{value}"


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class BackendClient:
    """
    Thin async wrapper over the backend's REST and auth endpoints.

    Use as an async context manager:

        async with BackendClient(url="...", api_key="...") as backend:
            rows = await backend.select("profiles")

    Or with lazy initialisation (for long-lived services):

        backend = BackendClient(url="...", api_key="...")
        rows = await backend.select("profiles")  # client auto-creates on first use
        await backend.close()

    The caller's access token is passed per call, so one client can serve
    many users concurrently.
    """

    REST_PATH = "/rest/v1"
    AUTH_PATH = "/auth/v1"

    def __init__(
        self,
        *,
        url: str,
        api_key: str,
        service_role_key: str | None = None,
        schema: str = "public",
        application_name: str = "talent-scout",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not url or not api_key:
            raise InvalidConfigurationError(
                "Missing backend URL or API key (set SUPABASE_URL and SUPABASE_ANON_KEY)"
            )
        self._base_url = url.rstrip("/")
        self._api_key = api_key
        self._service_role_key = service_role_key
        self._schema = schema
        self._default_headers = {
            "apikey": api_key,
            "x-application-name": application_name,
        }
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> "BackendClient":
        return cls(
            url=settings.supabase_url or "",
            api_key=settings.supabase_anon_key or "",
            service_role_key=settings.supabase_service_role_key,
            schema=settings.supabase_schema,
            application_name=settings.application_name,
            timeout=settings.request_timeout,
            transport=transport,
        )

    # -- Lifecycle -----------------------------------------------------------

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def client(self) -> httpx.AsyncClient:
        """Return the HTTP client, lazily creating it if needed."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=self._default_headers,
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    # -- Transport -----------------------------------------------------------

    def _auth_header(self, access_token: str | None) -> dict[str, str]:
        return {"Authorization": f"Bearer {access_token or self._api_key}"}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        Make a single HTTP request.

        Raises:
            BackendError: On any non-2xx response (status_code set) or a
                transport failure (status_code None)
        """
        try:
            response = await self.client.request(
                method,
                path,
                params=params,
                json=json,
                headers=headers,
            )
        except httpx.RequestError as e:
            logger.debug("Backend request %s %s failed: %s", method, path, e)
            raise BackendError(f"Request failed: {e}") from e

        if response.status_code >= 400:
            error = BackendError.from_response(response)
            logger.debug(
                "Backend %s %s returned %d: %s",
                method,
                path,
                response.status_code,
                error.message,
            )
            raise error

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def _rest_headers(self, access_token: str | None, prefer: str | None = None) -> dict[str, str]:
        headers = {
            **self._auth_header(access_token),
            "Accept-Profile": self._schema,
            "Content-Profile": self._schema,
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    # -- Tables --------------------------------------------------------------

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: dict[str, str] | None = None,
        order: str | None = None,
        limit: int | None = None,
        access_token: str | None = None,
    ) -> list[dict[str, Any]]:
        """
        Read rows from a table.

        Args:
            table: Table name
            columns: PostgREST select expression, may embed related tables
            filters: Column -> operator expression, e.g. {"id": "eq.42"}
            order: PostgREST order expression, e.g. "created_at.desc"
            limit: Maximum number of rows
            access_token: Caller's session token (anon key if omitted)
        """
        params: dict[str, Any] = {"select": columns, **(filters or {})}
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = limit
        rows = await self._request(
            "GET",
            f"{self.REST_PATH}/{table}",
            params=params,
            headers=self._rest_headers(access_token),
        )
        return rows or []

    async def insert(
        self,
        table: str,
        rows: list[dict[str, Any]] | dict[str, Any],
        *,
        access_token: str | None = None,
    ) -> list[dict[str, Any]]:
        """Insert rows and return them as stored."""
        result = await self._request(
            "POST",
            f"{self.REST_PATH}/{table}",
            json=rows,
            headers=self._rest_headers(access_token, prefer="return=representation"),
        )
        return result or []

    async def upsert(
        self,
        table: str,
        rows: list[dict[str, Any]] | dict[str, Any],
        *,
        access_token: str | None = None,
    ) -> list[dict[str, Any]]:
        """Insert rows, merging with existing rows on primary key conflict."""
        result = await self._request(
            "POST",
            f"{self.REST_PATH}/{table}",
            json=rows,
            headers=self._rest_headers(
                access_token,
                prefer="resolution=merge-duplicates,return=representation",
            ),
        )
        return result or []

    async def update(
        self,
        table: str,
        values: dict[str, Any],
        *,
        filters: dict[str, str],
        access_token: str | None = None,
    ) -> list[dict[str, Any]]:
        """Update rows matching `filters` and return them."""
        if not filters:
            raise InvalidConfigurationError("Refusing to update without filters")
        result = await self._request(
            "PATCH",
            f"{self.REST_PATH}/{table}",
            params=filters,
            json=values,
            headers=self._rest_headers(access_token, prefer="return=representation"),
        )
        return result or []

    async def rpc(
        self,
        function: str,
        params: dict[str, Any] | None = None,
        *,
        access_token: str | None = None,
    ) -> Any:
        """Call a Postgres function exposed through the REST API."""
        return await self._request(
            "POST",
            f"{self.REST_PATH}/rpc/{function}",
            json=params or {},
            headers=self._rest_headers(access_token),
        )

    # -- Auth ----------------------------------------------------------------

    async def sign_in_with_password(self, email: str, password: str) -> dict[str, Any]:
        """Exchange credentials for a session payload."""
        return await self._request(
            "POST",
            f"{self.AUTH_PATH}/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
            headers=self._auth_header(None),
        )

    async def sign_up(self, email: str, password: str) -> dict[str, Any]:
        """Create an auth user. Returns a session payload or a bare user."""
        return await self._request(
            "POST",
            f"{self.AUTH_PATH}/signup",
            json={"email": email, "password": password},
            headers=self._auth_header(None),
        )

    async def sign_out(self, access_token: str) -> None:
        await self._request(
            "POST",
            f"{self.AUTH_PATH}/logout",
            headers=self._auth_header(access_token),
        )

    async def get_user(self, access_token: str) -> dict[str, Any] | None:
        """Fetch the auth user owning `access_token`."""
        return await self._request(
            "GET",
            f"{self.AUTH_PATH}/user",
            headers=self._auth_header(access_token),
        )

    async def delete_user(self, user_id: str) -> None:
        """Delete an auth user. Requires the service role key."""
        if not self._service_role_key:
            raise InvalidConfigurationError(
                "Deleting users requires SUPABASE_SERVICE_ROLE_KEY"
            )
        await self._request(
            "DELETE",
            f"{self.AUTH_PATH}/admin/users/{user_id}",
            headers={
                "apikey": self._service_role_key,
                "Authorization": f"Bearer {self._service_role_key}",
            },
        )
