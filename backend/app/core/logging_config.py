"""
Logging for the StreamHub API.

Production writes one JSON object per line for the log shipper; development
gets short coloured lines. Call ``setup_logging()`` once at import of
``app.main``.
"""

import json
import logging
import sys
import time
import traceback
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from app.core.config import settings

DEFAULT_SERVICE_NAME = "streamhub-api"

# Attributes every LogRecord has; anything else was passed via ``extra=``
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}

_QUIET_LOGGERS = ("uvicorn", "uvicorn.access", "sqlalchemy.engine", "aiosqlite")


def _record_extras(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _STANDARD_ATTRS}


class JSONFormatter(logging.Formatter):
    """Serialize a record, its ``extra`` fields and any exception as JSON."""

    def __init__(self, service_name: str = DEFAULT_SERVICE_NAME, environment: Optional[str] = None):
        super().__init__()
        self.service_name = service_name
        self.environment = environment or settings.ENVIRONMENT

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "environment": self.environment,
            "source": f"{record.filename}:{record.lineno} in {record.funcName}",
        }

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, exc_tb = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": traceback.format_exception(exc_type, exc_value, exc_tb),
            }

        extras = _record_extras(record)
        if extras:
            entry["extra"] = extras

        return json.dumps(entry, default=str)


class ColoredFormatter(logging.Formatter):
    """Single-line console output, coloured by level."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self):
        super().__init__(fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                         datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        return f"{color}{super().format(record)}{self.RESET}"

    def formatException(self, ei) -> str:
        # Last line only; full tracebacks go to the JSON logs
        return traceback.format_exception_only(ei[0], ei[1])[-1].rstrip()


def setup_logging(
    service_name: str = DEFAULT_SERVICE_NAME,
    log_level: Optional[str] = None,
    json_logs: Optional[bool] = None,
) -> None:
    """
    Install a single stdout handler on the root logger.

    Args:
        service_name: Value of the ``service`` field in JSON output
        log_level: Level name; defaults to DEBUG when settings.DEBUG, else INFO
        json_logs: Force JSON on or off; defaults to on in production
    """
    level_name = (log_level or ("DEBUG" if settings.DEBUG else "INFO")).upper()
    level = logging.getLevelName(level_name)
    if json_logs is None:
        json_logs = settings.ENVIRONMENT.lower() == "production"

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter(service_name) if json_logs else ColoredFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("streamhub.logging").info(
        "Logging ready (level=%s json=%s env=%s)", level_name, json_logs, settings.ENVIRONMENT
    )


def generate_request_id() -> str:
    """Eight hex characters; enough to correlate lines of one request."""
    return uuid.uuid4().hex[:8]


class RequestLoggingMiddleware:
    """
    Pure ASGI middleware: one log line per HTTP request, and an
    ``x-request-id`` response header carrying the same id.
    """

    def __init__(self, app, skip_paths: tuple[str, ...] = ("/health",)):
        self.app = app
        self.skip_paths = skip_paths
        self.logger = logging.getLogger("streamhub.http")

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            return await self.app(scope, receive, send)

        request_id = generate_request_id()
        scope.setdefault("state", {})["request_id"] = request_id
        started = time.perf_counter()
        status_code = 500

        async def send_with_request_id(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                message["headers"] = [
                    *message.get("headers", []),
                    (b"x-request-id", request_id.encode("ascii")),
                ]
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            path = scope.get("path", "/")
            if path not in self.skip_paths:
                self._log(scope.get("method", "?"), path, status_code,
                          (time.perf_counter() - started) * 1000, request_id)

    def _log(self, method: str, path: str, status_code: int, duration_ms: float, request_id: str) -> None:
        self.logger.log(
            logging.WARNING if status_code >= 400 else logging.INFO,
            "%s %s -> %s (%.1fms)",
            method, path, status_code, duration_ms,
            extra={
                "request_id": request_id,
                "method": method,
                "path": path,
                "status": status_code,
                "duration_ms": round(duration_ms, 1),
            },
        )
