"""FastAPI backend for the UGC video generator."""

import logging
import sys
import time
from collections import defaultdict
from pathlib import Path

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from pydantic import BaseModel

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from ugcgen.config import get_settings
from ugcgen.media.editing import MediaEditError
from ugcgen.providers.errors import (
    AuthError,
    JobCanceledError,
    JobTimeoutError,
    NotFoundError,
    ProviderError,
    RateLimitError,
    TransientError,
    ValidationError,
)

settings = get_settings()

logger = logging.getLogger(__name__)
logging.basicConfig(level=getattr(logging, settings.ugc_log_level.upper(), logging.INFO))

app = FastAPI(
    title="UGC Video Generator API",
    description="Text to speech, text to video and video editing on hosted AI providers.",
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)


# ---------------------------------------------------------------------------
# Error mapping: every failure becomes {success: false, error}
# ---------------------------------------------------------------------------
_STATUS_BY_ERROR: list[tuple[type[ProviderError], int]] = [
    (ValidationError, 400),
    (AuthError, 401),
    (NotFoundError, 404),
    (JobCanceledError, 409),
    (RateLimitError, 429),
    (TransientError, 503),
    (JobTimeoutError, 504),
]


def status_for(error: ProviderError) -> int:
    for cls, code in _STATUS_BY_ERROR:
        if isinstance(error, cls):
            return code
    return 502


@app.exception_handler(ProviderError)
async def provider_error_handler(request: Request, exc: ProviderError):
    code = status_for(exc)
    if code >= 500 or code == 429:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.user_message)
    headers = {}
    if isinstance(exc, RateLimitError):
        headers["Retry-After"] = str(int(exc.retry_after))
    return JSONResponse(
        status_code=code,
        content={"success": False, "error": exc.user_message, "code": exc.code},
        headers=headers,
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(MediaEditError)
async def media_error_handler(request: Request, exc: MediaEditError):
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"success": False, "error": str(exc), "code": "media"})


# ---------------------------------------------------------------------------
# Basic in-memory rate limiter (per IP, 30 requests / 60 s for mutating routes)
# ---------------------------------------------------------------------------
RATE_LIMIT_WINDOW = 60  # seconds
RATE_LIMIT_MAX = 30  # max requests per window
_rate_store: dict[str, list[float]] = defaultdict(list)


@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    """Simple sliding-window rate limiter for non-GET routes."""
    if request.method in ("GET", "HEAD", "OPTIONS"):
        return await call_next(request)

    client_ip = request.client.host if request.client else "unknown"
    now = time.time()
    _rate_store[client_ip] = [t for t in _rate_store[client_ip] if now - t < RATE_LIMIT_WINDOW]
    if len(_rate_store[client_ip]) >= RATE_LIMIT_MAX:
        return Response(
            content='{"success":false,"error":"Rate limit exceeded. Try again later."}',
            status_code=429,
            media_type="application/json",
            headers={"Retry-After": str(RATE_LIMIT_WINDOW)},
        )
    _rate_store[client_ip].append(now)
    return await call_next(request)


# ---------------------------------------------------------------------------
# CORS, added last so it wraps the rate limiter (Starlette middleware is LIFO)
# ---------------------------------------------------------------------------
cors_origins = settings.cors_origin_list
cors_origin_regex = settings.cors_origin_regex
logger.info("CORS configured for origins: %s", cors_origins)
if cors_origin_regex:
    logger.info("CORS origin regex: %s", cors_origin_regex)
logger.info("Collections stored under %s", settings.storage_dir)

cors_kw: dict = {
    "allow_origins": cors_origins,
    "allow_credentials": True,
    "allow_methods": ["*"],
    "allow_headers": ["*"],
    "expose_headers": ["*"],
}
if cors_origin_regex:
    cors_kw["allow_origin_regex"] = cors_origin_regex
app.add_middleware(CORSMiddleware, **cors_kw)


# ---------------------------------------------------------------------------
# Health & root
# ---------------------------------------------------------------------------
class HealthResponse(BaseModel):
    status: str
    data_dir: str


@app.get("/health", response_model=HealthResponse)
@app.get("/api/health", response_model=HealthResponse)
async def health():
    """Health check endpoint."""
    return HealthResponse(status="ok", data_dir=str(settings.data_dir))


@app.get("/api/")
async def root():
    """API root."""
    return {"message": "UGC Video Generator API", "version": "0.1.0"}


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
from backend.routes import batch, generation, history, media, suggest  # noqa: E402

app.include_router(generation.router, prefix="/api", tags=["generation"])
app.include_router(history.router, prefix="/api", tags=["history"])
app.include_router(batch.router, prefix="/api", tags=["batch"])
app.include_router(media.router, prefix="/api", tags=["media"])
app.include_router(suggest.router, prefix="/api", tags=["suggest"])
