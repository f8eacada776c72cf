"""AI chat endpoint — relays one message to the ERPAI agent as an SSE stream."""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import ValidationError

from mrp_console.adapters.erpai import ERPAIClient
from mrp_console.config import Settings, get_settings
from mrp_console.dependencies import get_erpai
from mrp_console.schemas.chat import ChatRequest
from mrp_console.services.chat_service import ChatRelay

logger = logging.getLogger(__name__)

router = APIRouter()

_SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"}


@router.post("")
async def ai_chat(
    request: Request,
    settings: Settings = Depends(get_settings),
    client: ERPAIClient = Depends(get_erpai),
):
    """Stream the agent's answer.

    Client sends: {"message": "...", "threadId": "..."}
    Server sends: ``data: {"type": "status|thinking|block|text_delta|thread_title|error|done", ...}``
    """
    try:
        req = ChatRequest.model_validate(await request.json())
    except (ValueError, ValidationError):
        return JSONResponse({"error": "Message is required"}, status_code=400)

    if not isinstance(req.message, str) or not req.message.strip():
        return JSONResponse({"error": "Message is required"}, status_code=400)

    if not settings.token:
        return JSONResponse(
            {"error": "Server configuration error: missing ERPAI_TOKEN"}, status_code=500
        )

    relay = ChatRelay(
        req.message.strip(),
        settings=settings,
        client=client,
        thread_id=req.threadId,
    )
    logger.info("AI chat request (thread %s, session %s)", relay.thread_id, relay.session_id)
    return StreamingResponse(relay.stream(), media_type="text/event-stream", headers=_SSE_HEADERS)
