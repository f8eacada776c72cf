"""Chat schemas for the SSE relay."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel


class ChatRequest(BaseModel):
    """Inbound message from the browser."""
    message: Any = None
    threadId: str | None = None


class RelayState(StrEnum):
    """Lifecycle of one relay session."""

    IDLE = "idle"
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    ACTIVE = "active"
    TERMINAL = "terminal"


class UpstreamEvent(StrEnum):
    """``eventType`` values sent by the agent service."""

    CONNECTED = "new-connection-success"
    PROCESSING_START = "processing_start"
    COPILOT_RESPONSE = "ai_copilot_response"
    PROCESSING_COMPLETE = "processing_complete"
    PROCESSING_ERROR = "processing_error"
    THREAD_TITLE = "thread_title_updated"
    PONG = "_pong_"


# Authentication rejections
AUTH_ERROR_EVENTS = frozenset({"new-connection-error", "new-connection-failed", "unauthorized"})
