"""Chat service — relay one chat message to the ERPAI agent and stream back events.

One ``ChatRelay`` per HTTP request. It opens a single WebSocket to the agent
service, authenticates, submits the message over HTTP, and translates the
agent's frames into browser events:

    status | thinking | block | text_delta | thread_title | error | done

Exactly one ``done`` is emitted per relay and nothing follows it.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import aclosing
from typing import Any

import httpx
import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, ConnectionClosedOK, WebSocketException

from mrp_console.adapters.base import ERPAIError
from mrp_console.adapters.erpai import ERPAIClient
from mrp_console.config import Settings
from mrp_console.schemas.chat import AUTH_ERROR_EVENTS, RelayState, UpstreamEvent

logger = logging.getLogger(__name__)

_GENERIC_PROCESSING_ERROR = "The agent failed to process your request"
_GENERIC_AUTH_ERROR = "Authentication with the agent service failed"
_TIMEOUT_ERROR = "The agent did not respond in time"


# ── Payload helpers ──────────────────────────────────────────────────


def format_sse(event: dict[str, Any]) -> str:
    """Frame one event as an SSE ``data:`` record."""
    return f"data: {json.dumps(event)}\n\n"


def _decode(value: Any) -> Any:
    """Decode an embedded JSON document; ``None`` when it doesn't parse."""
    if isinstance(value, (str, bytes, bytearray)):
        try:
            return json.loads(value)
        except ValueError:
            return None
    return value


def _extract_message(payload: Any) -> str | None:
    """Pull a human-readable message out of ``{message}`` / ``{error}`` shapes."""
    if not isinstance(payload, dict):
        return None
    for key in ("message", "error"):
        value = payload.get(key)
        if isinstance(value, str) and value:
            return value
        if isinstance(value, dict):
            nested = value.get("message")
            if isinstance(nested, str) and nested:
                return nested
    return None


def _block_event(block: Any) -> dict[str, Any] | None:
    if not isinstance(block, dict):
        return None
    return {
        "type": "block",
        "id": block.get("id"),
        "format": block.get("format"),
        "content": block.get("content"),
        "subtitle": block.get("subtitle"),
        "metadata": block.get("metadata"),
    }


class ChatRelay:
    """WebSocket → SSE bridge for a single chat message."""

    def __init__(
        self,
        message: str,
        *,
        settings: Settings,
        client: ERPAIClient,
        thread_id: str | None = None,
        connect: Callable[..., Awaitable[Any]] | None = None,
    ) -> None:
        self.message = message
        self.thread_id = thread_id or str(uuid.uuid4())
        self.session_id = str(uuid.uuid4())
        self.state = RelayState.IDLE

        self._settings = settings
        self._client = client
        self._connect = connect or websockets.connect
        self._queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._ws: Any = None
        self._runner: asyncio.Task | None = None
        self._heartbeat: asyncio.Task | None = None
        self._flush: asyncio.Task | None = None
        self._closing: asyncio.Task | None = None

    # ── Outbound stream ──────────────────────────────────────────────

    async def events(self) -> AsyncIterator[dict[str, Any]]:
        """Yield browser events until (and including) ``done``."""
        self._emit({
            "type": "status",
            "status": "connecting",
            "threadId": self.thread_id,
            "sessionId": self.session_id,
        })
        self._emit({"type": "thinking"})
        self.state = RelayState.CONNECTING
        self._runner = asyncio.create_task(self._run())
        try:
            while True:
                event = await self._queue.get()
                yield event
                if event["type"] == "done":
                    return
        finally:
            # Client went away early → tear down without anyone listening
            self._terminate()
            await self._release()

    async def stream(self) -> AsyncIterator[str]:
        async with aclosing(self.events()) as events:
            async for event in events:
                yield format_sse(event)

    def _emit(self, event: dict[str, Any]) -> None:
        if self.state is RelayState.TERMINAL:
            logger.debug("Dropping %s event after done", event.get("type"))
            return
        self._queue.put_nowait(event)

    def _terminate(self, error: str | None = None) -> None:
        """Enter TERMINAL: queue error/done, stop timers, close the socket. Runs once."""
        if self.state is RelayState.TERMINAL:
            return
        self.state = RelayState.TERMINAL
        if error:
            logger.warning("Chat relay %s failed: %s", self.session_id, error)
            self._queue.put_nowait({"type": "error", "message": error})
        self._queue.put_nowait({"type": "done", "threadId": self.thread_id})

        current = asyncio.current_task()
        for task in (self._heartbeat, self._flush):
            if task is not None and task is not current and not task.done():
                task.cancel()
        if self._ws is not None:
            self._closing = asyncio.create_task(self._ws.close())
        logger.info("Chat relay %s finished (thread %s)", self.session_id, self.thread_id)

    async def _release(self) -> None:
        """Wait for background work started by this relay to wind down."""
        if self._runner is not None and not self._runner.done():
            self._runner.cancel()
        tasks = [t for t in (self._runner, self._heartbeat, self._flush, self._closing) if t is not None]
        # Task outcomes were already surfaced as events
        await asyncio.gather(*tasks, return_exceptions=True)

    # ── Upstream session ─────────────────────────────────────────────

    async def _run(self) -> None:
        try:
            await asyncio.wait_for(self._session(), timeout=self._settings.max_duration)
        except TimeoutError:
            self._terminate(_TIMEOUT_ERROR)
        except Exception as exc:
            logger.exception("Chat relay %s crashed", self.session_id)
            self._terminate(f"Chat relay error: {exc}")

    async def _session(self) -> None:
        url = self._settings.agent_ws_url
        logger.info("Chat relay %s connecting to %s", self.session_id, url)
        try:
            self._ws = await self._connect(url)
        except (OSError, WebSocketException) as exc:
            self._terminate(f"Could not connect to the agent: {exc}")
            return

        self.state = RelayState.AUTHENTICATING
        self._heartbeat = asyncio.create_task(self._keepalive())
        try:
            await self._send({
                "eventType": "new-connection",
                "message": {"token": self._settings.token, "threadId": self.thread_id},
            })
            async for raw in self._ws:
                await self._handle_frame(raw)
                if self.state is RelayState.TERMINAL:
                    break
        except ConnectionClosedOK:
            pass
        except ConnectionClosedError as exc:
            self._terminate(f"Agent connection error: {exc}")

        if self.state is not RelayState.TERMINAL and self._flush is not None:
            # processing_complete already seen; finish on its own schedule
            await self._flush
        if self.state is not RelayState.TERMINAL:
            logger.info("Agent closed the connection before completing (relay %s)", self.session_id)
            self._terminate()

    async def _send(self, frame: dict[str, Any]) -> None:
        await self._ws.send(json.dumps(frame))

    async def _keepalive(self) -> None:
        while True:
            await asyncio.sleep(self._settings.heartbeat_interval)
            try:
                await self._send({"eventType": "_ping_"})
            except ConnectionClosed:
                return

    async def _finish_after_delay(self) -> None:
        # Trailing content blocks can still arrive after processing_complete
        await asyncio.sleep(self._settings.completion_flush_delay)
        self._terminate()

    # ── Frame handling ───────────────────────────────────────────────

    async def _handle_frame(self, raw: Any) -> None:
        frame = _decode(raw)
        if not isinstance(frame, dict):
            logger.debug("Skipping malformed frame from agent: %.200r", raw)
            return
        event_type = frame.get("eventType")

        if self.state is RelayState.AUTHENTICATING:
            if event_type == UpstreamEvent.CONNECTED:
                await self._on_authenticated()
            elif event_type in AUTH_ERROR_EVENTS or "error" in frame:
                self._terminate(
                    _extract_message(frame)
                    or _extract_message(_decode(frame.get("message")))
                    or _GENERIC_AUTH_ERROR
                )
            return

        if self.state is not RelayState.ACTIVE:
            return

        if event_type == UpstreamEvent.PROCESSING_START:
            self._emit({"type": "thinking"})
        elif event_type == UpstreamEvent.COPILOT_RESPONSE:
            self._on_copilot_response(frame.get("message"))
        elif event_type == UpstreamEvent.PROCESSING_COMPLETE:
            if self._flush is None:
                self._flush = asyncio.create_task(self._finish_after_delay())
        elif event_type == UpstreamEvent.PROCESSING_ERROR:
            self._terminate(_extract_message(_decode(frame.get("message"))) or _GENERIC_PROCESSING_ERROR)
        elif event_type == UpstreamEvent.THREAD_TITLE:
            raw_title = frame.get("message")
            payload = _decode(raw_title)
            if isinstance(payload, dict):
                title = payload.get("title")
            elif isinstance(payload, str):
                title = payload
            else:
                # Plain-text title
                title = raw_title
            if isinstance(title, str) and title:
                self._emit({"type": "thread_title", "title": title, "threadId": self.thread_id})
        # _pong_ and anything unrecognised: nothing to forward

    async def _on_authenticated(self) -> None:
        self.state = RelayState.ACTIVE
        logger.info("Chat relay %s authenticated; submitting message", self.session_id)
        try:
            await self._client.submit_agent_message(
                self.message, thread_id=self.thread_id, session_id=self.session_id
            )
        except ERPAIError as exc:
            self._terminate(_extract_message(_decode(exc.body)) or f"Agent API error ({exc.status})")
        except httpx.HTTPError as exc:
            self._terminate(f"Failed to submit message: {exc}")

    def _on_copilot_response(self, raw: Any) -> None:
        payload = _decode(raw)
        if not isinstance(payload, dict):
            logger.debug("Skipping unparseable copilot payload")
            return
        kind = payload.get("type")

        if kind == "content_block":
            event = _block_event(payload.get("block"))
            if event:
                self._emit(event)
        elif kind == "content_blocks":
            for block in payload.get("blocks") or []:
                event = _block_event(block)
                if event:
                    self._emit(event)
        elif kind == "stream":
            text = payload.get("content", payload.get("text"))
            if isinstance(text, str) and text:
                self._emit({"type": "text_delta", "text": text})
        elif kind == "done":
            self._terminate()
