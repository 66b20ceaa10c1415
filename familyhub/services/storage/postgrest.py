"""
PostgREST Storage Implementation

DESIGN DECISION: The hosted project exposes every table through a
PostgREST endpoint and the session through an auth endpoint, so a
thin httpx client is all we need:
1. No vendor SDK between us and the wire format
2. One AsyncClient shared by every request (connection pooling)
3. Easy to test with httpx.MockTransport

TRADEOFFS:
- No transactions across requests (the store documents the gaps)
- Filters are limited to what RemoteDataService exposes

Query mapping:
    eq={"user_id": u}                 -> user_id=eq.u
    any_in={"from_id": ids}           -> from_id=in.(a,b)
    any_in={"from_id": ids, "to_id": ids}
                                      -> or=(from_id.in.(a,b),to_id.in.(a,b))
    embed=["medications"]             -> select=*,medications(*)
    order_by="created_at", desc       -> order=created_at.desc
"""

from typing import Any, Optional, Sequence

import httpx
import structlog

from familyhub.config import DataServiceSettings, get_settings
from familyhub.models.user import AuthUser
from familyhub.services.storage.interface import (
    AuthError,
    NotFoundError,
    RemoteDataService,
    RemoteError,
    Row,
)


logger = structlog.get_logger(__name__)

# PostgREST reserved characters inside in.(...) lists
_RESERVED = set(',.:()" ')


def format_value(value: Any) -> str:
    """Render a filter value the way PostgREST expects it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _quote(value: Any) -> str:
    text = format_value(value)
    if any(ch in _RESERVED for ch in text):
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return text


def _in_list(values: Sequence[Any]) -> str:
    return "(" + ",".join(_quote(v) for v in values) + ")"


def build_select_params(
    *,
    eq: Optional[dict[str, Any]] = None,
    any_in: Optional[dict[str, Sequence[Any]]] = None,
    embed: Sequence[str] = (),
    order_by: Optional[str] = None,
    descending: bool = False,
) -> list[tuple[str, str]]:
    """Translate RemoteDataService.select arguments to query parameters."""
    columns = ["*"] + [f"{child}(*)" for child in embed]
    params: list[tuple[str, str]] = [("select", ",".join(columns))]
    params.extend(build_match_params(eq))

    if any_in:
        if len(any_in) == 1:
            ((column, values),) = any_in.items()
            params.append((column, f"in.{_in_list(values)}"))
        else:
            clauses = [
                f"{column}.in.{_in_list(values)}"
                for column, values in any_in.items()
            ]
            params.append(("or", "(" + ",".join(clauses) + ")"))

    if order_by:
        params.append(("order", f"{order_by}.{'desc' if descending else 'asc'}"))

    return params


def build_match_params(eq: Optional[dict[str, Any]]) -> list[tuple[str, str]]:
    params = []
    for column, value in (eq or {}).items():
        if value is None:
            params.append((column, "is.null"))
        else:
            params.append((column, f"eq.{format_value(value)}"))
    return params


class PostgrestClient:
    """
    Low-level HTTP client for the hosted project.

    Handles authentication headers and maps transport/HTTP failures
    to RemoteError.
    """

    def __init__(
        self,
        settings: Optional[DataServiceSettings] = None,
        access_token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._settings = settings or get_settings().data_service
        self._access_token = access_token
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def settings(self) -> DataServiceSettings:
        return self._settings

    @property
    def access_token(self) -> Optional[str]:
        return self._access_token

    def set_session(self, access_token: Optional[str]) -> None:
        """Switch the session token used for row-level security."""
        self._access_token = access_token

    def _headers(self) -> dict[str, str]:
        bearer = self._access_token or self._settings.anon_key
        headers = {
            "apikey": self._settings.anon_key,
            "Authorization": f"Bearer {bearer}",
        }
        if self._settings.schema_name != "public":
            headers["Accept-Profile"] = self._settings.schema_name
            headers["Content-Profile"] = self._settings.schema_name
        return headers

    def get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._settings.url,
                timeout=self._settings.timeout_seconds,
                transport=self._transport,
            )
        return self._client

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[list[tuple[str, str]]] = None,
        json: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        """Send one request; raise RemoteError on anything but 2xx."""
        merged = self._headers()
        merged.update(headers or {})

        try:
            response = await self.get_client().request(
                method,
                path,
                params=params,
                json=json,
                headers=merged,
            )
        except httpx.HTTPError as e:
            raise RemoteError(f"Request to {path} failed: {e}") from e

        if response.is_success:
            return response

        message = _error_message(response)
        if response.status_code == 404:
            raise NotFoundError(message, status_code=404)
        raise RemoteError(message, status_code=response.status_code)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def _error_message(response: httpx.Response) -> str:
    """PostgREST and auth errors carry a JSON body with a message."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        for key in ("message", "msg", "error_description", "error"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {response.status_code}: {response.text[:200]}"


class PostgrestDataService(RemoteDataService):
    """
    PostgREST implementation of the remote data service.

    One instance per session; switch users with client.set_session().
    """

    def __init__(self, client: Optional[PostgrestClient] = None):
        self._client = client or PostgrestClient()

    @property
    def client(self) -> PostgrestClient:
        return self._client

    def _table_path(self, table: str) -> str:
        return f"/rest/v1/{table}"

    async def get_current_user(self) -> Optional[AuthUser]:
        if not self._client.access_token:
            return None

        try:
            response = await self._client.request("GET", "/auth/v1/user")
        except RemoteError as e:
            if e.status_code in (401, 403):
                logger.info("session_rejected", status_code=e.status_code)
                return None
            raise

        return AuthUser.model_validate(response.json())

    async def select(
        self,
        table: str,
        *,
        eq: Optional[dict[str, Any]] = None,
        any_in: Optional[dict[str, Sequence[Any]]] = None,
        embed: Sequence[str] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[Row]:
        if any_in is not None and not any(any_in.values()):
            # in.() can never match
            return []

        params = build_select_params(
            eq=eq,
            any_in=any_in,
            embed=embed,
            order_by=order_by,
            descending=descending,
        )
        response = await self._client.request(
            "GET", self._table_path(table), params=params
        )
        return response.json()

    async def insert(self, table: str, row: Row) -> Row:
        response = await self._client.request(
            "POST",
            self._table_path(table),
            params=[("select", "*")],
            json=[row],
            headers={"Prefer": "return=representation"},
        )
        rows = response.json()
        if not rows:
            raise RemoteError(f"Insert into {table} returned no row")
        return rows[0]

    async def update(self, table: str, values: Row, *, eq: dict[str, Any]) -> list[Row]:
        if not eq:
            raise RemoteError("Refusing to update without a filter")

        response = await self._client.request(
            "PATCH",
            self._table_path(table),
            params=build_match_params(eq),
            json=values,
            headers={"Prefer": "return=representation"},
        )
        return response.json()

    async def delete(self, table: str, *, eq: dict[str, Any]) -> int:
        if not eq:
            raise RemoteError("Refusing to delete without a filter")

        response = await self._client.request(
            "DELETE",
            self._table_path(table),
            params=build_match_params(eq),
            headers={"Prefer": "return=representation"},
        )
        return len(response.json())

    async def sign_in_with_password(self, email: str, password: str) -> AuthUser:
        """
        Exchange credentials for a session and keep its access token.

        Raises:
            AuthError: If the credentials are rejected
        """
        try:
            response = await self._client.request(
                "POST",
                "/auth/v1/token",
                params=[("grant_type", "password")],
                json={"email": email, "password": password},
            )
        except RemoteError as e:
            if e.status_code in (400, 401):
                raise AuthError(str(e)) from e
            raise

        body = response.json()
        self._client.set_session(body["access_token"])
        return AuthUser.model_validate(body["user"])
