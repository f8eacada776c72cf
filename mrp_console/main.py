"""FastAPI application entrypoint."""

import logging
import re
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mrp_console.adapters.base import ERPAIError, RecordNotFoundError, TableNotFoundError
from mrp_console.adapters.erpai import ERPAIClient
from mrp_console.config import settings
from mrp_console.routers import chat, dashboard, planning, records

# ── Logging setup ────────────────────────────────────────────────────
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
    datefmt="%H:%M:%S",
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("websockets").setLevel(logging.WARNING)


class TokenMaskingFilter(logging.Filter):
    """Mask bearer tokens in log messages."""

    _pattern = re.compile(r"(Bearer\s+)([A-Za-z0-9._\-]{8,})")

    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        masked = self._pattern.sub(lambda m: m.group(1) + "***MASKED***", msg)
        if masked != msg:
            record.msg = masked
            record.args = None
        return True


for _handler in logging.getLogger().handlers:
    _handler.addFilter(TokenMaskingFilter())

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup — one ERPAI client for the whole process
    if not settings.token:
        logger.warning("ERPAI_TOKEN is not set; record and chat endpoints will fail")
    app.state.erpai = ERPAIClient(settings)
    logger.info("ERPAI client ready (%s, app %s)", settings.base_url, settings.app_id)

    yield

    # Shutdown
    await app.state.erpai.aclose()


app = FastAPI(
    title="MRP Console",
    description="Manufacturing resource planning console backed by ERPAI",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TableNotFoundError)
@app.exception_handler(RecordNotFoundError)
async def not_found(request: Request, exc: LookupError):
    return JSONResponse({"error": str(exc)}, status_code=404)


@app.exception_handler(ERPAIError)
async def erpai_error(request: Request, exc: ERPAIError):
    return JSONResponse({"error": str(exc), "upstream_status": exc.status}, status_code=502)


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"error": f"Internal server error: {exc}"}, status_code=500)


# Mount routers
app.include_router(chat.router, prefix="/api/ai-chat", tags=["chat"])
app.include_router(records.router, prefix="/api/records", tags=["records"])
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["dashboard"])
app.include_router(planning.router, prefix="/api/planning", tags=["planning"])


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "service": "mrp-console",
        "erpai": {
            "base_url": settings.base_url,
            "app_id": settings.app_id,
            "token_configured": bool(settings.token),
        },
    }
