"""
Client for the hosted (PostgREST-style) store: one table per entity kind,
rows scoped by `user_id`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from app.core.config import settings

logger = logging.getLogger(__name__)

FlatData = dict[str, list[dict[str, Any]]]

# Parents before children.
TABLES: tuple[str, ...] = (
    "assistants",
    "admin_tasks",
    "appointments",
    "accounting_entries",
    "clients",
    "cases",
    "stages",
    "sessions",
    "invoices",
    "invoice_items",
)
DELETE_ORDER: tuple[str, ...] = (
    "invoice_items",
    "sessions",
    "stages",
    "cases",
    "invoices",
    "admin_tasks",
    "appointments",
    "accounting_entries",
    "assistants",
    "clients",
)

_SCHEMA_ERROR_CODES = frozenset({"42P01", "42703", "PGRST204", "PGRST205"})
_SCHEMA_ERROR_HINTS = ("does not exist", "schema cache", "could not find the table")


def primary_key(table: str) -> str:
    return "name" if table == "assistants" else "id"


def row_key(table: str, row: dict[str, Any]) -> Any:
    return row.get(primary_key(table))


class RemoteStoreError(RuntimeError):
    def __init__(
        self, message: str, *, table: str | None = None, code: str | None = None, status_code: int | None = None
    ):
        super().__init__(message)
        self.table = table
        self.code = code
        self.status_code = status_code

    @property
    def is_schema_error(self) -> bool:
        if self.code in _SCHEMA_ERROR_CODES:
            return True
        lower = str(self).lower()
        return any(hint in lower for hint in _SCHEMA_ERROR_HINTS) or ("column" in lower and "not" in lower)

    def __str__(self) -> str:
        message = super().__str__()
        return f"[{self.table}] {message}" if self.table else message


@dataclass(frozen=True)
class SchemaCheck:
    ok: bool
    error: str | None = None  # unconfigured | uninitialized | network
    message: str = ""


def _error_from_response(r: httpx.Response, table: str) -> RemoteStoreError:
    code: str | None = None
    message = r.text[:200]
    try:
        body = r.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        code = str(body.get("code") or "") or None
        message = str(body.get("message") or message)
    return RemoteStoreError(f"{r.status_code} {message}", table=table, code=code, status_code=r.status_code)


def _json_rows(r: httpx.Response, table: str) -> list[dict[str, Any]]:
    try:
        body = r.json()
    except ValueError as e:
        raise RemoteStoreError(
            f"{r.status_code} invalid JSON response: {e}", table=table, status_code=r.status_code
        ) from e
    return body if isinstance(body, list) else []


def _in_filter(values: list[Any]) -> str:
    quoted = ",".join('"' + str(v).replace("\\", "\\\\").replace('"', '\\"') + '"' for v in values)
    return f"in.({quoted})"


class RemoteStore:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        user_id: str,
        *,
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.user_id = user_id
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
            },
        )

    @classmethod
    def from_settings(cls, user_id: str) -> RemoteStore | None:
        if not settings.remote_configured:
            return None
        return cls(
            str(settings.remote_url),
            settings.remote_api_key or "",
            user_id,
            timeout=settings.remote_timeout_seconds,
        )

    def close(self) -> None:
        self._client.close()

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    def _request(self, method: str, table: str, **kwargs: Any) -> httpx.Response:
        return self._client.request(method, f"/{table}", **kwargs)

    def _call(self, method: str, table: str, **kwargs: Any) -> httpx.Response:
        try:
            r = self._request(method, table, **kwargs)
        except httpx.HTTPError as e:
            raise RemoteStoreError(f"Failed to reach remote store: {e}", table=table) from e
        if r.status_code >= 400:
            raise _error_from_response(r, table)
        return r

    def check_schema(self) -> SchemaCheck:
        for table in TABLES:
            try:
                self._call("GET", table, params={"select": primary_key(table), "limit": "0"})
            except RemoteStoreError as e:
                logger.warning("Remote schema check failed for %s: %s", table, e)
                if e.status_code is None:
                    return SchemaCheck(ok=False, error="network", message=str(e))
                return SchemaCheck(ok=False, error="uninitialized", message=str(e))
        return SchemaCheck(ok=True)

    def fetch_all(self) -> FlatData:
        flat: FlatData = {}
        for table in TABLES:
            r = self._call("GET", table, params={"select": "*", "user_id": f"eq.{self.user_id}"})
            flat[table] = _json_rows(r, table)
        logger.info(
            "Fetched remote data for %s (%s)",
            self.user_id,
            ", ".join(f"{t}={len(flat[t])}" for t in TABLES),
        )
        return flat

    def upsert(self, flat: FlatData) -> FlatData:
        """Upserts rows table by table, parents first. Returns the rows the server stored."""
        stored: FlatData = {}
        for table in TABLES:
            rows = flat.get(table) or []
            if not rows:
                continue
            params = {"on_conflict": "user_id,name"} if table == "assistants" else None
            r = self._call(
                "POST",
                table,
                params=params,
                json=[{**row, "user_id": self.user_id} for row in rows],
                headers={"Prefer": "resolution=merge-duplicates,return=representation"},
            )
            stored[table] = _json_rows(r, table) if r.content else []
        return stored

    def delete(self, flat: FlatData) -> None:
        """Deletes rows by primary key, children first."""
        for table in DELETE_ORDER:
            keys = [row_key(table, row) for row in flat.get(table) or []]
            keys = [k for k in keys if k is not None]
            if not keys:
                continue
            self._call(
                "DELETE",
                table,
                params={primary_key(table): _in_filter(keys), "user_id": f"eq.{self.user_id}"},
            )
            logger.info("Deleted %d remote rows from %s", len(keys), table)
