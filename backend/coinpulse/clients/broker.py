"""Rate-limited, single-flight request broker for the market data provider.

All outbound calls go through one pump task that handles requests strictly
in arrival order, so at most one upstream call is ever in flight. Before
each call the pump enforces:

- a minimum spacing between consecutive calls, and
- a per-minute quota for the tracked host (sliding 60s window).

Failed calls are retried by the pump itself according to BackoffPolicy.
Successful payloads are written to the TTL cache before the caller's
future resolves. Concurrent fetches for the same cache key share one
queued request and one result.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable
from urllib.parse import urlsplit

import httpx

from coinpulse.clients.backoff import BackoffPolicy, FailureKind, parse_retry_after
from coinpulse.clients.errors import (
    BrokerError,
    InvalidResponseShape,
    RateLimitExceeded,
    TransportError,
    UpstreamStatusError,
)
from coinpulse.config import Settings, get_settings
from coinpulse.storage import TTLCache

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]
Validator = Callable[[Any], Any]


class RequestState(str, Enum):
    """Lifecycle of a queued request."""

    QUEUED = "queued"
    IN_FLIGHT = "in_flight"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class QueuedRequest:
    """A logical request owned by the broker until it completes.

    Callers only ever see ``future``.
    """

    url: str
    cache_key: str
    retries: int
    initial_delay: float
    future: asyncio.Future
    validate: Validator | None = None
    state: RequestState = RequestState.QUEUED
    attempts: int = 0
    current_backoff: float = 0.0


@dataclass
class UpstreamQuotaState:
    """Calls issued to the tracked host within the trailing window."""

    window: float = 60.0
    last_request_at: float | None = None
    recent: deque[float] = field(default_factory=deque)

    @property
    def window_started_at(self) -> float | None:
        return self.recent[0] if self.recent else None

    @property
    def requests_this_window(self) -> int:
        return len(self.recent)

    def expire(self, now: float) -> None:
        """Forget calls that have left the trailing window."""
        while self.recent and now - self.recent[0] >= self.window:
            self.recent.popleft()

    def count_within(self, now: float) -> int:
        """Calls inside the window ending at ``now``, without forgetting any."""
        return sum(1 for t in self.recent if now - t < self.window)

    def record(self, now: float) -> None:
        self.recent.append(now)
        self.last_request_at = now


def _mark_retrieved(future: asyncio.Future) -> None:
    # A caller may have stopped waiting; keep asyncio from logging the error
    if not future.cancelled():
        future.exception()


class RequestBroker:
    """Serialized, cached, rate-limited GET broker."""

    def __init__(
        self,
        settings: Settings | None = None,
        cache: TTLCache | None = None,
        client: httpx.AsyncClient | None = None,
        backoff: BackoffPolicy | None = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ):
        self.settings = settings or get_settings()
        self._clock = clock
        self._sleep = sleep
        self.cache = cache or TTLCache(ttl=self.settings.cache_ttl_seconds, clock=clock)
        self.backoff = backoff or BackoffPolicy(
            initial_delay=self.settings.initial_retry_delay,
            max_delay=self.settings.max_backoff,
        )
        self.quota = UpstreamQuotaState(window=self.settings.quota_window_seconds)

        self._client = client
        self._owns_client = client is None
        self._queue: deque[QueuedRequest] = deque()
        self._pending: dict[str, QueuedRequest] = {}
        self._pump_task: asyncio.Task | None = None
        self._last_dispatch_at: float | None = None
        self.upstream_calls = 0

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.settings.request_timeout)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Stop the pump and close the HTTP client if we created it."""
        if self._pump_task is not None and not self._pump_task.done():
            self._pump_task.cancel()
            try:
                await self._pump_task
            except asyncio.CancelledError:
                pass
        for request in list(self._queue):
            self._fail(request, TransportError("broker closed", url=request.url))
        self._queue.clear()

        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    @property
    def pending_count(self) -> int:
        """Logical requests queued or in flight."""
        return len(self._pending)

    def stats(self) -> dict[str, Any]:
        """Snapshot of broker state for status reporting."""
        return {
            "pending": self.pending_count,
            "cache_entries": len(self.cache),
            "upstream_calls": self.upstream_calls,
            "requests_this_window": self.quota.count_within(self._clock()),
            "quota_per_window": self.settings.quota_per_window,
        }

    # =========================================================================
    # Public API
    # =========================================================================

    async def fetch(
        self,
        url: str,
        cache_key: str,
        retries: int | None = None,
        initial_delay: float | None = None,
        validate: Validator | None = None,
    ) -> Any:
        """Fetch ``url`` through the cache and the request queue.

        Args:
            url: Absolute GET URL
            cache_key: Key the result is cached under
            retries: Retry budget (defaults to settings.max_retries)
            initial_delay: First backoff delay in seconds
            validate: Optional callable turning the decoded JSON into the
                value to cache; ValueError, TypeError or LookupError from it
                mean a malformed payload

        Returns:
            The cached or freshly fetched value. When the fetch fails after
            exhausting retries, the last cached value is returned if one exists.

        Raises:
            RateLimitExceeded: Retries exhausted on 429 and nothing cached
            TransportError: Upstream unreachable and nothing cached
            UpstreamStatusError: Upstream error status and nothing cached
            InvalidResponseShape: Payload did not match the expected schema
        """
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug(f"Cache hit: {cache_key}")
            return cached

        request = self._pending.get(cache_key)
        if request is None:
            future = asyncio.get_running_loop().create_future()
            future.add_done_callback(_mark_retrieved)
            request = QueuedRequest(
                url=url,
                cache_key=cache_key,
                retries=self.settings.max_retries if retries is None else retries,
                initial_delay=(
                    self.backoff.initial_delay if initial_delay is None else initial_delay
                ),
                future=future,
                validate=validate,
            )
            self._pending[cache_key] = request
            self._queue.append(request)
            self._ensure_pump()
        else:
            logger.debug(f"Joining pending request: {cache_key}")

        # Shielded so an abandoning caller cannot cancel the shared request
        return await asyncio.shield(request.future)

    def invalidate(self, prefix: str = "") -> int:
        """Expire cached entries whose key starts with ``prefix``.

        Expired entries still serve as a stale fallback if the next fetch fails.
        """
        return self.cache.expire(prefix)

    # =========================================================================
    # Pump
    # =========================================================================

    def _ensure_pump(self) -> None:
        if self._pump_task is None or self._pump_task.done():
            self._pump_task = asyncio.create_task(self._pump())

    async def _pump(self) -> None:
        while self._queue:
            request = self._queue.popleft()
            try:
                value = await self._execute(request)
            except asyncio.CancelledError:
                self._fail(
                    request,
                    TransportError("broker closed", url=request.url, attempts=request.attempts),
                )
                raise
            except BrokerError as e:
                self._fail(request, e)
            except Exception as e:
                logger.exception(f"Unexpected error fetching {request.url}")
                self._fail(
                    request,
                    TransportError(str(e), url=request.url, attempts=request.attempts),
                )
            else:
                self.cache.put(request.cache_key, value)
                self._complete(request, value)

    def _complete(self, request: QueuedRequest, value: Any) -> None:
        request.state = RequestState.SUCCEEDED
        self._pending.pop(request.cache_key, None)
        if not request.future.done():
            request.future.set_result(value)

    def _fail(self, request: QueuedRequest, error: BrokerError) -> None:
        request.state = RequestState.FAILED
        self._pending.pop(request.cache_key, None)
        if request.future.done():
            return

        if not isinstance(error, InvalidResponseShape):
            stale = self.cache.get_stale(request.cache_key)
            if stale is not None:
                age = stale.age(self._clock())
                note = ", invalidated" if stale.expired else ""
                logger.warning(
                    f"{type(error).__name__} for {request.url}; "
                    f"serving cached data ({age:.0f}s old{note})"
                )
                request.future.set_result(stale.value)
                return

        logger.error(f"Request failed for {request.url}: {error}")
        request.future.set_exception(error)

    async def _execute(self, request: QueuedRequest) -> Any:
        """Run one logical request to completion, retrying as allowed."""
        policy = self.backoff.with_initial_delay(request.initial_delay)
        attempt = 0

        while True:
            request.state = RequestState.IN_FLIGHT
            request.attempts += 1
            await self._wait_for_slot(request.url)

            hint: float | None = None
            try:
                response = await self._send(request.url)
            except httpx.RequestError as e:
                kind = FailureKind.TRANSPORT
                error: BrokerError = TransportError(
                    f"Could not reach {request.url}: {e!r}",
                    url=request.url,
                    attempts=request.attempts,
                )
            else:
                status = response.status_code
                if status == 429:
                    kind = FailureKind.RATE_LIMITED
                    hint = parse_retry_after(response.headers.get("Retry-After"))
                    error = RateLimitExceeded(
                        f"Rate limit exceeded after {request.attempts} attempts",
                        url=request.url,
                        attempts=request.attempts,
                    )
                elif status >= 500:
                    kind = FailureKind.SERVER
                    error = UpstreamStatusError(
                        f"HTTP error {status}",
                        url=request.url,
                        attempts=request.attempts,
                        status_code=status,
                    )
                elif status >= 400:
                    # Client errors will not change on retry
                    raise UpstreamStatusError(
                        f"HTTP error {status}",
                        url=request.url,
                        attempts=request.attempts,
                        status_code=status,
                    )
                else:
                    return self._decode(request, response)

            if not policy.should_retry(kind, attempt, request.retries):
                raise error

            delay = policy.next_delay(attempt, hint)
            request.state = RequestState.RETRYING
            request.current_backoff = delay
            logger.warning(
                f"{kind.value} on {request.url}. Retrying in {delay:.1f}s... "
                f"({request.retries - attempt} retries left)"
            )
            await self._sleep(delay)
            attempt += 1

    def _decode(self, request: QueuedRequest, response: httpx.Response) -> Any:
        try:
            payload = response.json()
        except ValueError as e:
            raise InvalidResponseShape(
                f"Response is not JSON: {e}", url=request.url, attempts=request.attempts
            ) from e

        if request.validate is None:
            return payload
        try:
            return request.validate(payload)
        except (ValueError, TypeError, LookupError) as e:
            raise InvalidResponseShape(
                f"Unexpected response shape: {e}", url=request.url, attempts=request.attempts
            ) from e

    async def _send(self, url: str) -> httpx.Response:
        client = await self._get_client()
        headers = {"Accept": "application/json"}
        if self._is_tracked(url):
            headers["User-Agent"] = self.settings.user_agent
        self.upstream_calls += 1
        logger.debug(f"GET {url}")
        return await client.get(url, headers=headers)

    # =========================================================================
    # Rate limiting
    # =========================================================================

    def _is_tracked(self, url: str) -> bool:
        return urlsplit(url).hostname == self.settings.tracked_host

    async def _wait_for_slot(self, url: str) -> None:
        """Sleep until the next call may be issued, then record it."""
        now = self._clock()
        if self._last_dispatch_at is not None:
            wait = self._last_dispatch_at + self.settings.min_request_spacing - now
            if wait > 0:
                await self._sleep(wait)
                now = self._clock()

        if self._is_tracked(url):
            self.quota.expire(now)
            while self.quota.requests_this_window >= self.settings.quota_per_window:
                wait = self.quota.window_started_at + self.quota.window - now
                logger.info(
                    f"Approaching rate limit for {self.settings.tracked_host}. "
                    f"Waiting {wait:.0f}s..."
                )
                await self._sleep(wait)
                now = self._clock()
                self.quota.expire(now)
            self.quota.record(now)

        self._last_dispatch_at = now
