"""ERPAI data API adapter.

Implements the hosted record-table API:
  - table lookup by name (metadata cached per process)
  - paged record queries, single-record CRUD, counts
  - column-id ↔ column-name translation of record cells
  - the agent "submit message" call used by the chat relay
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from mrp_console.adapters.base import ERPAIError, RecordBackend, RecordNotFoundError, TableNotFoundError
from mrp_console.config import Settings
from mrp_console.schemas.records import ColumnMeta, RecordPage, TableMeta
from mrp_console.tables import DASHBOARD_TABLES

logger = logging.getLogger(__name__)

# Column types computed server-side; never written
READ_ONLY_TYPES = frozenset({
    "formula", "rollup", "auto_seq", "seq_format_id", "ai_column", "auto_fill",
})
_SYSTEM_FIELDS = frozenset({"id", "createdAt", "updatedAt", "createdBy"})
_MATCH_ALL = {"logicalOperator": "and", "conditions": [], "ids": []}


# ── Cell transforms ──────────────────────────────────────────────────


def _option_name(col: ColumnMeta, option_id: Any) -> str | None:
    for opt in col.options or []:
        if opt.id == option_id:
            return opt.name
    return None


def _option_id(col: ColumnMeta, name: Any) -> int | None:
    for opt in col.options or []:
        if opt.name == name:
            return opt.id
    return None


def to_friendly(record: dict[str, Any], columns: list[ColumnMeta]) -> dict[str, Any]:
    """Translate an API record (cells keyed by column id) to a name-keyed dict."""
    by_id = {c.id: c for c in columns}
    result: dict[str, Any] = {"id": record.get("_id")}
    if record.get("createdAt"):
        result["createdAt"] = record["createdAt"]
    if record.get("modifiedAt"):
        result["updatedAt"] = record["modifiedAt"]

    for col_id, value in (record.get("cells") or {}).items():
        col = by_id.get(col_id)
        if col is None:
            continue

        if col.type == "select" and isinstance(value, list) and col.options:
            first = value[0] if value else None
            name = _option_name(col, first)
            value = name if name is not None else first
        elif col.type == "multi-select" and isinstance(value, list) and col.options:
            value = [_option_name(col, v) or str(v) for v in value]
        elif col.type == "boolean":
            value = value[0] == 1 if isinstance(value, list) and value else bool(value)
        elif col.type == "ref" and isinstance(value, list):
            value = value[0] if value else None

        result[col.name] = value

    return result


def to_cells(data: dict[str, Any], columns: list[ColumnMeta]) -> dict[str, Any]:
    """Translate a name-keyed dict to writable API cells keyed by column id."""
    by_name = {c.name: c for c in columns}
    cells: dict[str, Any] = {}

    for key, value in data.items():
        if key in _SYSTEM_FIELDS:
            continue
        col = by_name.get(key)
        if col is None or col.type in READ_ONLY_TYPES:
            continue

        if col.type == "select" and isinstance(value, str) and col.options:
            opt_id = _option_id(col, value)
            cells[col.id] = [opt_id] if opt_id is not None else value
        elif col.type == "multi-select" and isinstance(value, list) and col.options:
            cells[col.id] = [
                opt_id if (opt_id := _option_id(col, v)) is not None else v for v in value
            ]
        elif col.type == "boolean":
            cells[col.id] = [1 if value else 0]
        elif col.type == "ref":
            if isinstance(value, list):
                cells[col.id] = value
            else:
                cells[col.id] = [value] if value else []
        else:
            cells[col.id] = value

    return cells


class ERPAIClient(RecordBackend):
    """HTTP client for one ERPAI app."""

    def __init__(self, settings: Settings, http: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._http = http or httpx.AsyncClient(
            base_url=settings.base_url,
            headers=self.auth_headers(settings),
            timeout=settings.http_timeout,
        )
        self._tables: dict[str, TableMeta] = {}

    @staticmethod
    def auth_headers(settings: Settings) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {settings.token}",
            "x-app-id": settings.app_id,
            "x-api-source": "sdk",
        }

    async def aclose(self) -> None:
        await self._http.aclose()

    # ── Core protocol ────────────────────────────────────────────────

    async def _api(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        body: Any = None,
    ) -> Any:
        """Send one request; raise ERPAIError on a non-2xx status."""
        res = await self._http.request(method, path, params=params, json=body)
        if res.is_error:
            logger.warning("ERPAI %s %s → %d", method, path, res.status_code)
            raise ERPAIError(method, path, res.status_code, res.text)
        if "application/json" in res.headers.get("content-type", ""):
            return res.json()
        return None

    async def resolve_table(self, name: str) -> TableMeta:
        cached = self._tables.get(name)
        if cached:
            return cached

        res = await self._api(
            "GET",
            "/v1/app-builder/table",
            params={"appId": self._settings.app_id, "searchQuery": name},
        )
        for raw in (res or {}).get("data") or []:
            if raw.get("name") == name:
                table = TableMeta.model_validate(raw)
                self._tables[name] = table
                logger.debug("Resolved table %r → %s", name, table.id)
                return table
        raise TableNotFoundError(name)

    async def _query(self, table: TableMeta, params: dict[str, Any]) -> dict[str, Any]:
        return await self._api(
            "POST",
            f"/v1/app-builder/table/{table.id}/paged-record",
            params=params,
            body=_MATCH_ALL,
        ) or {}

    # ── Public API ───────────────────────────────────────────────────

    async def list_records(
        self,
        table: str,
        page: int = 1,
        page_size: int = 50,
        search: str | None = None,
    ) -> RecordPage:
        meta = await self.resolve_table(table)
        params: dict[str, Any] = {"pageNo": page, "pageSize": page_size}
        if search:
            params["q"] = search
        res = await self._query(meta, params)
        data = [to_friendly(r, meta.columns) for r in res.get("data") or []]
        total = res.get("totalCount")
        return RecordPage(data=data, total_count=total if total is not None else len(data))

    async def get_record(self, table: str, record_id: str) -> dict[str, Any]:
        meta = await self.resolve_table(table)
        res = await self._api("GET", f"/v1/app-builder/table/{meta.id}/record/{record_id}")
        raw = (res or [None])[0] if isinstance(res, list) else res
        if not raw:
            raise RecordNotFoundError(table, record_id)
        return to_friendly(raw, meta.columns)

    async def create_record(self, table: str, data: dict[str, Any]) -> Any:
        meta = await self.resolve_table(table)
        cells = to_cells(data, meta.columns)
        return await self._api("POST", f"/v1/app-builder/table/{meta.id}/record", body={"cells": cells})

    async def update_record(self, table: str, record_id: str, data: dict[str, Any]) -> Any:
        meta = await self.resolve_table(table)
        cells = to_cells(data, meta.columns)
        return await self._api(
            "PUT", f"/v1/app-builder/table/{meta.id}/record/{record_id}", body={"cells": cells}
        )

    async def delete_record(self, table: str, record_id: str) -> None:
        meta = await self.resolve_table(table)
        await self._api("DELETE", f"/v1/app-builder/table/{meta.id}/record/{record_id}")

    async def count_records(self, table: str) -> int:
        meta = await self.resolve_table(table)
        res = await self._query(meta, {"pageNo": 1, "pageSize": 1})
        return res.get("totalCount") or 0

    # ── Agent chat ───────────────────────────────────────────────────

    async def submit_agent_message(self, content: str, *, thread_id: str, session_id: str) -> None:
        """Hand the user's message to the agent for an authenticated thread."""
        await self._api(
            "POST",
            self._settings.submit_url,
            body={
                "content": content,
                "threadId": thread_id,
                "appId": self._settings.app_id,
                "action": "ASK",
                "chatType": "APP",
                "sessionId": session_id,
            },
        )


async def dashboard_stats(backend: RecordBackend) -> dict[str, int]:
    """Count the KPI tables concurrently; tables that fail are left out."""
    results = await asyncio.gather(
        *(backend.count_records(t) for t in DASHBOARD_TABLES),
        return_exceptions=True,
    )
    stats: dict[str, int] = {}
    for table, result in zip(DASHBOARD_TABLES, results):
        if isinstance(result, BaseException):
            logger.warning("Dashboard count failed for %s: %s", table, result)
            continue
        stats[table] = result
    return stats
