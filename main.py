"""Intentions API: FastAPI entry point."""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from intentions import openai_client
from intentions.config import settings
from intentions.errors import APIError, ErrorCodes, InternalError, UpstreamFailure, error_envelope
from intentions.models import HealthResponse
from intentions.routers import ai
from intentions.routers import intentions as stored

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set; tier 1 and 2 generation will fail upstream")
    if not settings.api_secret_key:
        logger.warning("API_SECRET_KEY is not set; API key authentication is disabled")
    if not settings.rate_limit_enabled:
        logger.warning("Rate limiting is disabled")

    openai_client.init_client()  # sync, no await
    yield
    await openai_client.close_client()


app = FastAPI(
    title="Intentions API",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-API-Key", "X-User-Id"],
    expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset", "X-Response-Mode"],
)


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------

def _error_response(exc: APIError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(exc.code, exc.public_message, exc.status_code),
        headers=exc.headers,
    )


@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    if isinstance(exc, UpstreamFailure):
        logger.error("Upstream failure on %s: %s", request.url.path, exc.message)
    return _error_response(exc)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = next((str(p) for p in reversed(first.get("loc", ())) if isinstance(p, str)), None)
        message = f"{field}: {first.get('msg')}" if field and field != "body" else str(first.get("msg"))
    return JSONResponse(
        status_code=400,
        content=error_envelope(ErrorCodes.VALIDATION_ERROR, message, 400),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = ErrorCodes.NOT_FOUND if exc.status_code == 404 else ErrorCodes.BAD_REQUEST
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(code, str(exc.detail), exc.status_code),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Full detail stays in the log; the caller gets the generic envelope.
    logger.exception("Unhandled error on %s", request.url.path)
    return _error_response(InternalError())


app.include_router(ai.router)
app.include_router(stored.router)


@app.get("/api/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=settings.app_version,
    )
