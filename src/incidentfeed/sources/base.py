"""Source contracts and the shared async HTTP client.

The pipeline only depends on the two read operations below. Anything with
matching async methods works as a source: the in-memory FakeIncidentApi, the
HTTP IncidentApiClient, or a test double.

BaseAsyncClient gives HTTP sources consistent behavior:
- Async/await over a pooled httpx.AsyncClient
- Token-bucket rate limiting
- Retries with exponential backoff on transient failures
- Every failure surfaced as SourceUnavailable
"""

import asyncio
import logging
from typing import Any, Protocol, Sequence, runtime_checkable

import httpx

from incidentfeed.errors import SourceUnavailable
from incidentfeed.models import Incident, Location

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES = {429, 502, 503, 504}


@runtime_checkable
class LocationSource(Protocol):
    """Supplies the locations to query."""

    async def get_locations(self) -> Sequence[Location]: ...


@runtime_checkable
class IncidentSource(Protocol):
    """Supplies the incidents reported by one location."""

    async def get_incidents_by_location_id(self, location_id: Any) -> Sequence[Incident]: ...


class RateLimiter:
    """Token bucket rate limiter for async operations.

    Args:
        rate: Maximum requests per second
    """

    def __init__(self, rate: int) -> None:
        self.rate = rate
        self.tokens = float(rate)
        self.updated_at: float | None = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Acquire a token, waiting if necessary."""
        async with self._lock:
            loop = asyncio.get_running_loop()
            if self.updated_at is None:
                self.updated_at = loop.time()

            while self.tokens < 1:
                now = loop.time()
                self.tokens = min(self.rate, self.tokens + (now - self.updated_at) * self.rate)
                self.updated_at = now
                if self.tokens < 1:
                    await asyncio.sleep((1 - self.tokens) / self.rate)

            self.tokens -= 1
            self.updated_at = loop.time()


class BaseAsyncClient:
    """Async HTTP client with rate limiting, retries and connection pooling.

    Must be used as an async context manager.

    Args:
        base_url: Base URL for all requests
        headers: Default headers for all requests
        rate_limit: Maximum requests per second (default: 10)
        timeout: Request timeout in seconds (default: 10)
        max_retries: Retries after the first attempt (default: 3)
        backoff: Base backoff in seconds, doubled on every retry (default: 1.0)
    """

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str] | None = None,
        rate_limit: int = 10,
        timeout: float = 10.0,
        max_retries: int = 3,
        backoff: float = 1.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.headers = headers or {}
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff = backoff
        self._rate_limiter = RateLimiter(rate=rate_limit)
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "BaseAsyncClient":
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=self.timeout,
            limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _retry_or_raise(self, attempt: int, endpoint: str, error: SourceUnavailable) -> None:
        """Sleep before the next attempt, or raise if retries are exhausted."""
        if attempt >= self.max_retries:
            logger.error("%s for %s, giving up after %d attempts", error, endpoint, attempt + 1)
            raise error
        delay = self.backoff * (2 ** attempt)
        logger.warning(
            "%s for %s, retrying in %.1fs (attempt %d/%d)",
            error, endpoint, delay, attempt + 1, self.max_retries + 1,
        )
        await asyncio.sleep(delay)

    async def get(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        location_id: Any = None,
    ) -> Any:
        """GET a JSON document.

        Args:
            endpoint: Path relative to base_url
            params: Query parameters
            location_id: Location being queried, attached to raised errors

        Returns:
            Parsed JSON body

        Raises:
            SourceUnavailable: On HTTP errors, timeouts, network errors or
                invalid JSON, after retries where they apply
        """
        if not self._client:
            raise RuntimeError("Client not initialized. Use async with context manager.")

        if not endpoint.startswith("/"):
            endpoint = f"/{endpoint}"

        attempt = 0
        while True:
            await self._rate_limiter.acquire()
            logger.debug("GET %s%s params=%s (attempt %d)", self.base_url, endpoint, params, attempt + 1)

            try:
                response = await self._client.get(endpoint, params=params)
            except httpx.TimeoutException as e:
                await self._retry_or_raise(
                    attempt, endpoint, SourceUnavailable(f"Request timeout: {e}", location_id)
                )
                attempt += 1
                continue
            except httpx.NetworkError as e:
                await self._retry_or_raise(
                    attempt, endpoint, SourceUnavailable(f"Network error: {e}", location_id)
                )
                attempt += 1
                continue

            if response.status_code >= 400:
                error = SourceUnavailable(
                    f"API request failed: {response.status_code}",
                    location_id,
                    status_code=response.status_code,
                )
                if response.status_code not in _RETRYABLE_STATUS_CODES:
                    logger.error("API error: %d %s - %s", response.status_code, endpoint, response.text[:500])
                    raise error
                await self._retry_or_raise(attempt, endpoint, error)
                attempt += 1
                continue

            try:
                return response.json()
            except ValueError as e:
                raise SourceUnavailable(
                    f"Invalid JSON response: {e}",
                    location_id,
                    status_code=response.status_code,
                ) from e
