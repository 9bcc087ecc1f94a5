"""
Error taxonomy for the feed engine.

    FeedError
    ├── InvalidTopic            unknown domain; never retried
    ├── MalformedResponse       body matches no recognised collection shape
    └── UpstreamError
        ├── UpstreamUnavailable network failure, retried then stale-served
        │   ├── UpstreamTimeout
        │   └── RateLimited     HTTP 429
        └── UpstreamRejected    HTTP 4xx/5xx from the provider
            ├── NotFound        HTTP 404
            └── ProviderError   HTTP 5xx
"""

from typing import Any, Optional


class FeedError(Exception):
    """Base class for every error raised by the engine."""


class InvalidTopic(FeedError):
    """Requested domain is not one of the configured sports."""

    def __init__(self, domain: str):
        super().__init__(f"Invalid sport specified: {domain!r}")
        self.domain = domain


class MalformedResponse(FeedError):
    """Upstream body could not be read as a collection of records."""

    def __init__(self, message: str, body: Any = None):
        super().__init__(message)
        self.body = body


class UpstreamError(FeedError):
    """Any failure talking to the upstream provider."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class UpstreamUnavailable(UpstreamError):
    """Provider could not be reached (connection error, timeout, throttling)."""


class UpstreamTimeout(UpstreamUnavailable):
    """Request exceeded the configured wall-clock bound."""


class RateLimited(UpstreamUnavailable):
    """Provider answered HTTP 429."""

    def __init__(self, message: str, path: Optional[str] = None, retry_after: Optional[float] = None):
        super().__init__(message, path)
        self.retry_after = retry_after


class UpstreamRejected(UpstreamError):
    """Provider answered with an HTTP error status."""

    def __init__(self, status: int, message: str, path: Optional[str] = None, body: Any = None):
        super().__init__(message, path)
        self.status = status
        self.body = body

    @property
    def is_data_error(self) -> bool:
        """Bad request or provider-side error; eligible for fallback-by-date."""
        return self.status == 400 or self.status >= 500


class NotFound(UpstreamRejected):
    """Provider answered HTTP 404."""


class ProviderError(UpstreamRejected):
    """Provider answered HTTP 5xx."""


__all__ = [
    "FeedError",
    "InvalidTopic",
    "MalformedResponse",
    "UpstreamError",
    "UpstreamUnavailable",
    "UpstreamTimeout",
    "RateLimited",
    "UpstreamRejected",
    "NotFound",
    "ProviderError",
]
