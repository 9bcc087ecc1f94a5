"""
Structured logging for the feed engine.

Events are snake_case names with keyword fields:

    logger.info("topic_activated", topic="football", interval_seconds=60)

Context bound with ``log_context`` (or by ``RequestContextMiddleware`` for
HTTP requests and WebSocket connections) is merged into every entry logged
while it is active, so refresh logs carry ``topic``/``trigger`` and stream
logs carry ``subscriber``.
"""

import logging
import os
import sys
import time
import uuid
from collections.abc import MutableMapping
from functools import lru_cache
from typing import Any, Optional

import structlog
from structlog.contextvars import bound_contextvars
from structlog.types import Processor

SERVICE_NAME = "sportsfeed"

# Upstream bodies end up in log fields; keep them readable
MAX_FIELD_LENGTH = 200
TRUNCATED_FIELDS = ("body", "error")

REQUEST_ID_HEADER = "x-request-id"


def _add_service(logger: Any, method_name: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _truncate_fields(logger: Any, method_name: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    for name in TRUNCATED_FIELDS:
        value = event_dict.get(name)
        if isinstance(value, (bytes, bytearray)):
            value = bytes(value).decode("utf-8", errors="replace")
        if isinstance(value, str) and len(value) > MAX_FIELD_LENGTH:
            value = value[:MAX_FIELD_LENGTH] + "..."
        if value is not None:
            event_dict[name] = value
    return event_dict


def _wants_json() -> bool:
    return os.getenv("ENV", "development").lower() in ("production", "prod")


def build_processors(json_logs: bool) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _add_service,
        _truncate_fields,
    ]
    if json_logs:
        return processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return processors + [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]


@lru_cache(maxsize=1)
def configure_logging(level: str = "INFO", json_logs: Optional[bool] = None) -> None:
    """
    Configure structlog over the stdlib root logger. Idempotent.

    JSON output is used when ``json_logs`` is set, or by default when
    ``ENV`` is production; otherwise entries are rendered for the console.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )
    structlog.configure(
        processors=build_processors(_wants_json() if json_logs is None else json_logs),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(f"{SERVICE_NAME}.{name}")  # type: ignore[no-any-return]


def log_context(**fields: Any):
    """
    Bind fields for the duration of a ``with`` block, restoring prior values.

        with log_context(topic="football", trigger="tick"):
            logger.info("refresh_started")
    """
    return bound_contextvars(**fields)


def current_context() -> dict[str, Any]:
    return structlog.contextvars.get_contextvars()


# =============================================================================
# ASGI
# =============================================================================


def _header(scope: MutableMapping[str, Any], name: str) -> Optional[str]:
    target = name.encode("latin-1")
    for key, value in scope.get("headers", ()):
        if key.lower() == target:
            return value.decode("latin-1")
    return None


class RequestContextMiddleware:
    """
    One request id per HTTP request or WebSocket connection.

    The id comes from an incoming ``X-Request-ID`` header or is generated,
    is bound to the log context for the whole exchange, stored on
    ``scope["state"]`` and echoed back on HTTP responses.
    """

    def __init__(self, app, logger: Optional[structlog.stdlib.BoundLogger] = None):
        self.app = app
        self.logger = logger or get_logger("http")

    async def __call__(self, scope, receive, send):
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        request_id = _header(scope, REQUEST_ID_HEADER) or uuid.uuid4().hex
        scope.setdefault("state", {})["request_id"] = request_id
        path = scope.get("path", "")

        if scope["type"] == "websocket":
            with log_context(request_id=request_id, path=path, transport="websocket"):
                started = time.perf_counter()
                self.logger.info("websocket_opened")
                try:
                    await self.app(scope, receive, send)
                finally:
                    self.logger.info("websocket_closed", duration_seconds=round(time.perf_counter() - started, 3))
            return

        method = scope.get("method", "")
        status_code = 500

        async def send_with_request_id(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 500)
                headers = list(message.get("headers", []))
                headers.append((REQUEST_ID_HEADER.encode(), request_id.encode()))
                message = {**message, "headers": headers}
            await send(message)

        with log_context(request_id=request_id, method=method, path=path):
            started = time.perf_counter()
            self.logger.info("request_started")
            try:
                await self.app(scope, receive, send_with_request_id)
            finally:
                duration = round(time.perf_counter() - started, 3)
                if status_code >= 500:
                    self.logger.error("request_complete", status_code=status_code, duration_seconds=duration)
                elif status_code >= 400:
                    self.logger.warning("request_complete", status_code=status_code, duration_seconds=duration)
                else:
                    self.logger.info("request_complete", status_code=status_code, duration_seconds=duration)


__all__ = [
    "RequestContextMiddleware",
    "configure_logging",
    "current_context",
    "get_logger",
    "log_context",
]
