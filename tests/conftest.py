"""Shared fixtures: settings, an in-memory record backend, fake agent socket."""

import asyncio
import json
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from mrp_console.adapters.base import ERPAIError, RecordBackend
from mrp_console.config import Settings, get_settings
from mrp_console.dependencies import get_erpai
from mrp_console.main import app
from mrp_console.schemas.records import RecordPage


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        token="test-token",
        app_id="app-123",
        base_url="https://erp.test/api",
        max_duration=2.0,
        heartbeat_interval=60.0,
        completion_flush_delay=0.05,
    )


class MemoryBackend(RecordBackend):
    """Record backend holding friendly records in dicts."""

    def __init__(self, data: dict[str, list[dict[str, Any]]] | None = None) -> None:
        self.data = {k: list(v) for k, v in (data or {}).items()}
        self.failing: set[str] = set()
        self.submitted: list[dict[str, Any]] = []
        self.submit_error: Exception | None = None

    def _rows(self, table: str) -> list[dict[str, Any]]:
        if table in self.failing:
            raise ERPAIError("POST", f"/table/{table}", 503, "unavailable")
        return self.data.setdefault(table, [])

    async def list_records(self, table, page=1, page_size=50, search=None):
        rows = self._rows(table)
        if search:
            rows = [r for r in rows if any(search in str(v) for v in r.values())]
        start = (page - 1) * page_size
        return RecordPage(data=rows[start:start + page_size], total_count=len(rows))

    async def get_record(self, table, record_id):
        for row in self._rows(table):
            if row["id"] == record_id:
                return row
        raise ERPAIError("GET", f"/record/{record_id}", 404, '{"message": "Record not found"}')

    async def create_record(self, table, data):
        row = {"id": f"rec-{len(self._rows(table)) + 1}", **data}
        self._rows(table).append(row)
        return {"_id": row["id"]}

    async def update_record(self, table, record_id, data):
        row = await self.get_record(table, record_id)
        row.update(data)
        return {"_id": record_id}

    async def delete_record(self, table, record_id):
        self.data[table] = [r for r in self._rows(table) if r["id"] != record_id]

    async def count_records(self, table):
        return len(self._rows(table))

    async def submit_agent_message(self, content, *, thread_id, session_id):
        self.submitted.append({"content": content, "threadId": thread_id, "sessionId": session_id})
        if self.submit_error:
            raise self.submit_error


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest_asyncio.fixture
async def client(backend: MemoryBackend, settings: Settings):
    app.dependency_overrides[get_erpai] = lambda: backend
    app.dependency_overrides[get_settings] = lambda: settings
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


class FakeAgentSocket:
    """Scripted stand-in for the agent WebSocket.

    ``script`` frames are delivered once the client authenticates with
    ``new-connection``. Strings are sent as-is, dicts JSON-encoded, and a
    float pauses delivery for that many seconds.
    """

    def __init__(self, script: list[Any] | None = None, *, close_after_script: bool = False) -> None:
        self.script = script or []
        self.close_after_script = close_after_script
        self.sent: list[dict[str, Any]] = []
        self.close_calls = 0
        self._inbox: asyncio.Queue[Any] = asyncio.Queue()
        self._feeder: asyncio.Task | None = None

    async def send(self, raw: str) -> None:
        frame = json.loads(raw)
        self.sent.append(frame)
        if frame.get("eventType") == "new-connection" and self._feeder is None:
            self._feeder = asyncio.create_task(self._feed())

    async def _feed(self) -> None:
        for item in self.script:
            if isinstance(item, float):
                await asyncio.sleep(item)
            elif isinstance(item, dict):
                await self._inbox.put(json.dumps(item))
            else:
                await self._inbox.put(item)
        if self.close_after_script:
            await self._inbox.put(None)

    def __aiter__(self):
        return self

    async def __anext__(self) -> Any:
        item = await self._inbox.get()
        if item is None:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self) -> None:
        self.close_calls += 1
        if self._feeder is not None:
            self._feeder.cancel()
        await self._inbox.put(None)


def connect_to(socket: FakeAgentSocket):
    """A ``connect`` callable that hands out *socket*."""
    urls: list[str] = []

    async def _connect(url: str, **kwargs: Any) -> FakeAgentSocket:
        urls.append(url)
        return socket

    _connect.urls = urls  # type: ignore[attr-defined]
    return _connect
