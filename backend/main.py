"""
Support Desk - Simulated Live Support Chat
FastAPI backend: chat widget sessions, AI agent admin, chat archive
"""

from contextlib import asynccontextmanager
import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from routers import admin, chat_widget, settings
from middleware.rate_limit import RateLimitMiddleware
from logging_config import setup_logging
from config import runtime_config
from errors import SupportDeskError, error_response, http_status_for
from services.activity_log import setup_activity_log
from services.redis_client import close_redis
from services.settings_store import get_settings_store

setup_logging(getattr(logging, runtime_config.log_level, logging.INFO))
setup_activity_log()
logger = logging.getLogger(__name__)

# Instance ID - changes on every startup, used by the widget to detect restarts
INSTANCE_ID = str(uuid.uuid4())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown events"""
    # Startup
    settings_store = get_settings_store()
    hub = chat_widget.get_widget_hub()
    logger.info(
        f"Support desk ready: AI agent {'enabled' if settings_store.enabled else 'disabled'}, "
        f"{len(hub.archiver)} archived chat(s), completion API {runtime_config.completion_api_url}"
    )

    yield

    # Shutdown
    tracked = len(hub)
    hub.shutdown()
    await close_redis()
    logger.info(f"Stopped {tracked} widget session(s)")
    logger.info("Support desk signing off")


app = FastAPI(
    title="Support Desk",
    description="Simulated live support chat with an AI-backed agent",
    version="1.0.0",
    lifespan=lifespan,
)


# Security Headers Middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        # Prevent clickjacking
        response.headers["X-Frame-Options"] = "DENY"
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Referrer policy for privacy
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


# Request body size limit middleware
MAX_BODY_SIZE_API = 64 * 1024  # Chat messages and settings only


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests with bodies exceeding the size limit."""

    async def dispatch(self, request: Request, call_next):
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit():
            size = int(content_length)
            if size > MAX_BODY_SIZE_API:
                return JSONResponse(
                    status_code=413,
                    content={"detail": f"Request body too large ({size} bytes, limit {MAX_BODY_SIZE_API} bytes)"},
                )
        return await call_next(request)


app.add_middleware(SecurityHeadersMiddleware)

# Request body size limit
app.add_middleware(RequestSizeLimitMiddleware)

# Rate limiting middleware (Redis-backed)
app.add_middleware(RateLimitMiddleware)

# CORS - restrict to localhost and private network IPs on port 3000
app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1|192\.168\.\d+\.\d+|[a-zA-Z][a-zA-Z0-9\-]*):3000$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SupportDeskError)
async def support_desk_error_handler(request: Request, exc: SupportDeskError):
    """Domain errors become the standard error body with a mapped status."""
    status_code = http_status_for(exc)
    if status_code >= 500:
        logger.warning(f"{request.method} {request.url.path} -> {status_code} {exc.code.value}: {exc.message}")
    return JSONResponse(status_code=status_code, content=error_response(exc))


# API Routers
app.include_router(chat_widget.router, tags=["chat"])
app.include_router(settings.router, tags=["settings"])
app.include_router(admin.router, tags=["admin"])


@app.get("/health")
async def health():
    """Health check."""
    hub = chat_widget.get_widget_hub()
    return {
        "status": "ok",
        "service": "support-desk",
        "ai_agent_enabled": hub.settings.enabled,
        "widget_sessions": len(hub),
        "active_chats": hub.active_count(),
    }


@app.get("/api/instance")
async def get_instance():
    """Return instance ID - changes on each startup."""
    return {"instance_id": INSTANCE_ID}
