"""
Async client for the sport highlights provider.

Features:
- Async HTTP with aiohttp
- Bounded retry policy with exponential backoff
- Provider rate-limit tracking from RapidAPI response headers
- Connection pooling
"""

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional
from urllib.parse import urlparse

import aiohttp

from sportsfeed.constants import UPSTREAM_BASE_URL
from sportsfeed.exceptions import (
    MalformedResponse,
    NotFound,
    ProviderError,
    RateLimited,
    UpstreamRejected,
    UpstreamTimeout,
    UpstreamUnavailable,
)
from sportsfeed.logging import get_logger

logger = get_logger("upstream")

Sleep = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry for transient failures (timeouts, connection errors, 429).

    Attempt ``n`` (1-based) that fails waits
    ``backoff_seconds * backoff_factor ** (n - 1)`` before the next one,
    capped at ``max_backoff_seconds``. A ``Retry-After`` hint wins when larger.
    """

    max_attempts: int = 3
    backoff_seconds: float = 1.0
    backoff_factor: float = 2.0
    max_backoff_seconds: float = 60.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.backoff_seconds < 0 or self.max_backoff_seconds < 0:
            raise ValueError("backoff must not be negative")

    def delay(self, attempt: int, retry_after: Optional[float] = None) -> float:
        delay = self.backoff_seconds * self.backoff_factor ** (attempt - 1)
        if retry_after is not None:
            delay = max(delay, retry_after)
        return min(delay, self.max_backoff_seconds)


class RateLimiter:
    """
    Client-side throttle for the provider quota.

    Spaces requests evenly over the hour and waits for the quota reset when
    the provider reports it is nearly exhausted.
    """

    def __init__(self, requests_per_hour: int = 3600, low_watermark: int = 5):
        self.requests_per_hour = requests_per_hour
        self.remaining: Optional[int] = None
        self.reset_at: Optional[float] = None
        self.last_request_time: float = 0
        self.min_interval = 3600 / requests_per_hour
        self.low_watermark = low_watermark
        self.backoff_factor = 1.0

    def update_from_headers(self, headers: Mapping[str, str]) -> None:
        """Update quota info from RapidAPI ``x-ratelimit-requests-*`` headers."""
        remaining = headers.get("x-ratelimit-requests-remaining")
        if remaining is not None and remaining.isdigit():
            self.remaining = int(remaining)
        reset = headers.get("x-ratelimit-requests-reset")
        if reset is not None and reset.isdigit():
            self.reset_at = time.time() + int(reset)

    async def wait_if_needed(self, sleep: Sleep = asyncio.sleep) -> None:
        """Wait if approaching the quota or backing off."""
        now = time.time()

        elapsed = now - self.last_request_time
        spacing = self.min_interval * self.backoff_factor
        if elapsed < spacing:
            await sleep(spacing - elapsed)

        if self.remaining is not None and self.remaining < self.low_watermark and self.reset_at:
            wait_seconds = self.reset_at - time.time()
            if wait_seconds > 0:
                logger.warning("rate_limit_low", remaining=self.remaining, wait_seconds=round(wait_seconds))
                await sleep(min(wait_seconds + 1, 300))

        self.last_request_time = time.time()

    def increase_backoff(self) -> None:
        """Increase backoff factor on throttling."""
        self.backoff_factor = min(self.backoff_factor * 2, 32)

    def reset_backoff(self) -> None:
        """Relax backoff on successful requests."""
        self.backoff_factor = max(self.backoff_factor / 2, 1.0)


def _query_params(params: Optional[Mapping[str, Any]]) -> dict[str, str]:
    """aiohttp only accepts str/int/float query values."""
    if not params:
        return {}
    query = {}
    for name, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = str(value).lower()
        query[name] = str(value)
    return query


def _retry_after(headers: Mapping[str, str]) -> Optional[float]:
    value = headers.get("Retry-After")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class SportsApiClient:
    """
    Async client for ``sport-highlights-api``.

    Example:
        async with SportsApiClient(api_key) as client:
            matches = await client.fetch("football", {"date": "2024-12-10", "limit": 100})
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = UPSTREAM_BASE_URL,
        timeout: float = 10.0,
        retry: Optional[RetryPolicy] = None,
        rate_limiter: Optional[RateLimiter] = None,
        session: Optional[aiohttp.ClientSession] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry = retry or RetryPolicy()
        self.rate_limiter = rate_limiter or RateLimiter()
        self._session = session
        self._owns_session = session is None
        self._sleep = sleep

    @property
    def headers(self) -> dict[str, str]:
        return {
            "x-rapidapi-key": self.api_key,
            "x-rapidapi-host": urlparse(self.base_url).hostname or "",
        }

    async def open(self) -> None:
        """Create the aiohttp session if the client owns one."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                connector=aiohttp.TCPConnector(limit=10, limit_per_host=5),
                headers=self.headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "SportsApiClient":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def fetch(self, domain: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Match list for a sport."""
        return await self.request(f"{domain}/matches", params)

    async def fetch_detail(self, domain: str, item_id: str) -> Any:
        """Full detail of one match."""
        return await self.request(f"{domain}/matches/{item_id}")

    async def request(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """
        GET ``{base_url}/{path}`` and return the decoded JSON body.

        Raises:
            NotFound, ProviderError, UpstreamRejected: provider error status
            RateLimited, UpstreamTimeout, UpstreamUnavailable: after retries
            MalformedResponse: body is not JSON
        """
        await self.open()
        url = f"{self.base_url}/{path.lstrip('/')}"
        query = _query_params(params)

        last_error: Optional[UpstreamUnavailable] = None
        last_cause: Optional[BaseException] = None

        for attempt in range(1, self.retry.max_attempts + 1):
            await self.rate_limiter.wait_if_needed(self._sleep)
            retry_after = None
            try:
                async with self._session.get(url, params=query, headers=self.headers) as response:
                    self.rate_limiter.update_from_headers(response.headers)

                    if 200 <= response.status < 300:
                        self.rate_limiter.reset_backoff()
                        return await self._read_json(response, path)

                    if response.status == 429:
                        retry_after = _retry_after(response.headers)
                        self.rate_limiter.increase_backoff()
                        last_error = RateLimited("Provider rate limit exceeded", path, retry_after)
                        last_cause = None
                    else:
                        raise await self._rejection(response, path)

            except asyncio.TimeoutError as e:
                last_error = UpstreamTimeout(f"Request to {path} timed out", path)
                last_cause = e

            except aiohttp.ClientError as e:
                last_error = UpstreamUnavailable(f"Request to {path} failed: {e}", path)
                last_cause = e

            if attempt == self.retry.max_attempts:
                raise last_error from last_cause

            delay = self.retry.delay(attempt, retry_after)
            logger.warning(
                "upstream_retry",
                path=path,
                attempt=attempt,
                max_attempts=self.retry.max_attempts,
                delay_seconds=delay,
                error=str(last_error),
            )
            await self._sleep(delay)

    async def _read_json(self, response: aiohttp.ClientResponse, path: str) -> Any:
        try:
            text = await response.text()
        except (UnicodeDecodeError, LookupError) as e:
            raise MalformedResponse(f"Response from {path} could not be decoded: {e}") from e
        if not text.strip():
            return None
        try:
            return json.loads(text)
        except ValueError as e:
            raise MalformedResponse(f"Response from {path} is not JSON", text[:200]) from e

    async def _rejection(self, response: aiohttp.ClientResponse, path: str) -> UpstreamRejected:
        try:
            text = await response.text(errors="replace")
        except LookupError:
            # Unknown charset in Content-Type
            text = ""
        status = response.status
        logger.error("upstream_error_status", path=path, status=status, body=text[:200])
        message = f"Provider answered {status} for {path}"
        if status == 404:
            return NotFound(status, message, path, text)
        if status >= 500:
            return ProviderError(status, message, path, text)
        return UpstreamRejected(status, message, path, text)
