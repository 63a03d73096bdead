import logging
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.v1 import api_router
from app.core.config import settings
from app.core.logging_config import RequestLoggingMiddleware, setup_logging
from app.core.security import TokenConfig, TokenService
from app.db.session import check_db_connection, init_db

# Must run before any module logs
setup_logging()
logger = logging.getLogger("streamhub")

SERVICE_NAME = "streamhub-backend"
SERVICE_VERSION = "1.0.0"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Cache-Control": "no-store",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Fixed hardening headers on every response."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        return response


class ErrorResponse(BaseModel):
    """Body of every unhandled-error response."""
    error: str
    detail: str | None = None
    timestamp: str
    path: str | None = None


class HealthResponse(BaseModel):
    """Body of GET /health."""
    status: str
    service: str
    version: str
    environment: str
    checks: dict[str, bool]


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info("Database schema ready")
    yield
    logger.info("Shutting down %s", SERVICE_NAME)


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Accounts and session tokens for the StreamHub video platform",
    version=SERVICE_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# Built once at import: a bad secret or TTL stops the process here
app.state.token_service = TokenService(TokenConfig.from_settings(settings))

cors_origins = list(settings.ALLOWED_ORIGINS)


def cors_headers_for(request: Request) -> dict[str, str]:
    """CORS headers for error responses built outside the CORS middleware."""
    origin = request.headers.get("origin", "")
    if origin not in cors_origins:
        return {}
    return {"Access-Control-Allow-Origin": origin, "Access-Control-Allow-Credentials": "true"}


def _error_body(exc: Exception, error_id: str, path: str, now: datetime) -> ErrorResponse:
    if settings.ENVIRONMENT.lower() == "production":
        return ErrorResponse(
            error="Internal server error",
            detail=f"Something went wrong. Reference ID: {error_id}",
            timestamp=now.isoformat(),
            path=path,
        )
    return ErrorResponse(error=type(exc).__name__, detail=str(exc), timestamp=now.isoformat(), path=path)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Last-resort handler for anything a route did not turn into an HTTP error.
    In production, only a reference ID is returned.
    """
    now = datetime.now(timezone.utc)
    error_id = now.strftime("%Y%m%d%H%M%S%f")
    logger.error(
        "Unhandled exception [%s] on %s %s: %s\n%s",
        error_id, request.method, request.url.path, exc,
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(exc, error_id, request.url.path, now).model_dump(),
        headers=cors_headers_for(request),
    )


# Credentialed CORS needs explicit origins, never "*"
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Reports database reachability. Returns 503 when the database is down.
    """
    db_healthy = await check_db_connection()
    checks = {"database": db_healthy}

    response = HealthResponse(
        status="healthy" if db_healthy else "unhealthy",
        service=SERVICE_NAME,
        version=SERVICE_VERSION,
        environment=settings.ENVIRONMENT,
        checks=checks,
    )

    if not db_healthy:
        logger.warning("Health check failed: %s", checks)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=response.model_dump(),
        )

    return response


@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.PROJECT_NAME}"}
