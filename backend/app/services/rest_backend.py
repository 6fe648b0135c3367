"""Data backend over the hosted service's REST gateway (PostgREST dialect)."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional, Sequence
import httpx
from app.auth import Role
from app.config import get_settings
from app.exceptions import BackendError
from app.services.data_backend import DataBackend, Filter

CREDENTIAL_PROCEDURES = {
    Role.DOCTOR: "doctor_login",
    Role.ADMIN: "admin_login",
}

_RESERVED = set(',()"\\ ')


def _encode_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def _quote(text: str) -> str:
    """Quote a value embedded in a list or logic group when it holds reserved characters."""
    if not any(ch in _RESERVED for ch in text):
        return text
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _operand(f: Filter, nested: bool = False) -> str:
    if f.op == "in":
        items = ",".join(_quote(_encode_value(v)) for v in f.value)
        return f"in.({items})"
    value = _encode_value(f.value)
    return f"{f.op}.{_quote(value) if nested else value}"


def _jsonable(row: dict) -> dict:
    out = {}
    for key, value in row.items():
        if isinstance(value, (date, datetime)):
            value = value.isoformat()
        elif isinstance(value, Decimal):
            value = float(value)
        out[key] = value
    return out


def build_query_params(
    filters: Sequence[Filter] = (),
    any_of: Sequence[Filter] = (),
    columns: Optional[Sequence[str]] = None,
    order_by: Optional[str] = None,
    descending: bool = False,
    limit: Optional[int] = None,
) -> list[tuple[str, str]]:
    params = [("select", ",".join(columns) if columns else "*")]
    for f in filters:
        params.append((f.column, _operand(f)))
    if any_of:
        group = ",".join(f"{f.column}.{_operand(f, nested=True)}" for f in any_of)
        params.append(("or", f"({group})"))
    if order_by:
        params.append(("order", f"{order_by}.{'desc' if descending else 'asc'}"))
    if limit is not None:
        params.append(("limit", str(limit)))
    return params


def parse_content_range(header: Optional[str]) -> int:
    """Total from a ``Content-Range: 0-24/3573`` header; ``*/0`` for empty results."""
    if not header or "/" not in header:
        return 0
    total = header.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else 0


class RestDataBackend(DataBackend):
    """Client for the hosted relational store's REST gateway."""

    def __init__(self, base_url: str = None, api_key: str = None, timeout: float = None, transport=None):
        settings = get_settings()
        self.base_url = (base_url or settings.backend_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.backend_anon_key
        self.timeout = timeout or settings.http_timeout_seconds
        self._transport = transport
        self._access_token: Optional[str] = None

    def set_access_token(self, token: Optional[str]) -> None:
        self._access_token = token

    def _headers(self, prefer: Optional[str] = None) -> dict:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self._access_token or self.api_key}",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(self, method: str, path: str, *, prefer: str = None, **kwargs) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                base_url=f"{self.base_url}/rest/v1",
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, headers=self._headers(prefer), **kwargs)
                response.raise_for_status()
                return response
        except httpx.HTTPStatusError as e:
            raise BackendError(
                f"{method} {path} returned {e.response.status_code}",
                details={"status_code": e.response.status_code, "body": e.response.text},
            ) from e
        except httpx.HTTPError as e:
            raise BackendError(f"{method} {path} failed: {e}") from e

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise BackendError("Malformed JSON response", details={"body": response.text}) from e

    async def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        *,
        any_of: Sequence[Filter] = (),
        columns: Optional[Sequence[str]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict]:
        params = build_query_params(filters, any_of, columns, order_by, descending, limit)
        response = await self._request("GET", f"/{table}", params=params)
        return self._json(response) or []

    async def count(self, table: str, filters: Sequence[Filter] = ()) -> int:
        params = build_query_params(filters)
        response = await self._request("HEAD", f"/{table}", params=params, prefer="count=exact")
        return parse_content_range(response.headers.get("content-range"))

    async def insert(self, table: str, row: dict) -> dict:
        response = await self._request(
            "POST", f"/{table}", json=_jsonable(row), prefer="return=representation"
        )
        data = self._json(response)
        if isinstance(data, list):
            return data[0] if data else dict(row)
        return data or dict(row)

    async def delete(self, table: str, filters: Sequence[Filter]) -> int:
        if not filters:
            raise BackendError("Refusing to delete without filters", details={"table": table})
        params = build_query_params(filters)
        response = await self._request("DELETE", f"/{table}", params=params, prefer="return=representation")
        data = self._json(response)
        return len(data) if isinstance(data, list) else 0

    async def verify_credentials(self, role: Role, email: str, password: str) -> Optional[dict]:
        procedure = CREDENTIAL_PROCEDURES.get(role)
        if procedure is None:
            raise ValueError(f"No credential check for role {role.value}")
        response = await self._request(
            "POST", f"/rpc/{procedure}", json={"p_email": email, "p_password": password}
        )
        data = self._json(response)
        if isinstance(data, list):
            return data[0] if data else None
        return data or None
