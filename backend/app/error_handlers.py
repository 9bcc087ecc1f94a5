"""
Custom exception handlers for FastAPI.

Maps the engine's error taxonomy onto HTTP statuses:
- InvalidTopic -> 400
- NotFound -> 404
- RateLimited -> 429
- UpstreamUnavailable -> 503
- other UpstreamError / MalformedResponse -> 502
Unhandled errors get a generic 500 so internals are not disclosed.
"""

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from sportsfeed.exceptions import (
    FeedError,
    InvalidTopic,
    NotFound,
    RateLimited,
    UpstreamRejected,
    UpstreamUnavailable,
)
from sportsfeed.logging import current_context, get_logger

logger = get_logger("backend.errors")


def _get_request_id() -> str:
    """Current request ID from logging context (server-side only)."""
    return current_context().get("request_id", "-")


def _response_payload(detail: str, status_code: int) -> dict:
    return {
        "detail": detail,
        "status_code": status_code,
    }


def status_for(exc: FeedError) -> int:
    if isinstance(exc, InvalidTopic):
        return 400
    if isinstance(exc, NotFound):
        return 404
    if isinstance(exc, RateLimited):
        return 429
    if isinstance(exc, UpstreamUnavailable):
        return 503
    return 502


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        logger.warning(
            "http_exception",
            detail=exc.detail,
            status_code=exc.status_code,
            request_id=_get_request_id(),
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=_response_payload(str(exc.detail), exc.status_code),
        )

    @app.exception_handler(FeedError)
    async def feed_exception_handler(request: Request, exc: FeedError):
        status_code = status_for(exc)
        logger.warning(
            "feed_error",
            error=str(exc),
            error_type=type(exc).__name__,
            status_code=status_code,
            path=request.url.path,
            request_id=_get_request_id(),
        )
        content = _response_payload(str(exc), status_code)
        if isinstance(exc, UpstreamRejected):
            content["upstream_status"] = exc.status
        headers = None
        if isinstance(exc, RateLimited) and exc.retry_after is not None:
            headers = {"Retry-After": str(int(exc.retry_after))}
        return JSONResponse(status_code=status_code, content=content, headers=headers)

    @app.exception_handler(ValidationError)
    async def validation_exception_handler(request: Request, exc: ValidationError):
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            request_id=_get_request_id(),
        )
        return JSONResponse(
            status_code=422,
            content={
                **_response_payload("Validation error", 422),
                "errors": exc.errors(),
            },
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            request_id=_get_request_id(),
        )
        return JSONResponse(
            status_code=500,
            content=_response_payload("Internal server error", 500),
        )
