"""
Shared Plumbing for Upstream Signal Sources

The events directory and the weather provider are both plain JSON-over-HTTP
GET services. ``BaseUpstreamClient`` gives them:

- a lazily created ``httpx.AsyncClient`` with a per-source timeout
- bounded retries with exponential backoff for timeouts and transient statuses
- a per-source circuit breaker so a dead source is skipped quickly
- ``unavailable()`` to turn any ``UpstreamError`` into an ``Unavailable`` result

Nothing in here is allowed to fail a forecast: subclasses catch
``UpstreamError`` in their public methods.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional
import asyncio
import random

import httpx
import structlog

from models.signals import Unavailable

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ERRORS
# =============================================================================


class UpstreamError(Exception):
    """A signal source could not supply usable data."""

    default_message = "Upstream request failed"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        api_name: Optional[str] = None,
    ):
        self.message = message or self.default_message
        self.status_code = status_code
        self.response_body = response_body
        self.api_name = api_name
        super().__init__(self.message)

    def __str__(self) -> str:
        source = f"[{self.api_name}] " if self.api_name else ""
        status = f" (HTTP {self.status_code})" if self.status_code else ""
        return f"{source}{self.message}{status}"


class UpstreamTimeoutError(UpstreamError):
    default_message = "Request timed out"


class UpstreamStatusError(UpstreamError):
    default_message = "Unexpected response status"


class MalformedPayloadError(UpstreamError):
    """Body could not be decoded or mapped onto the signal models."""

    default_message = "Malformed payload"


class CircuitBreakerOpenError(UpstreamError):
    default_message = "Circuit breaker is open"


# =============================================================================
# CIRCUIT BREAKER
# =============================================================================


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreakerConfig:
    failure_threshold: int = 5  # consecutive failures before opening
    success_threshold: int = 2  # trial successes needed to close again
    timeout_seconds: int = 30  # how long an open source is skipped
    half_open_max_calls: int = 1  # concurrent trial calls once the timeout passes


class CircuitBreaker:
    """
    Per-source breaker.

    After ``failure_threshold`` consecutive failures the source is skipped for
    ``timeout_seconds``. Once that passes the breaker reports HALF_OPEN and lets
    a limited number of trial calls through; enough successes close it, any
    failure opens it again.
    """

    def __init__(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self._clock = clock
        self._lock = asyncio.Lock()

        self._state = CircuitState.CLOSED
        self._opened_at: Optional[datetime] = None
        self._consecutive_failures = 0
        self._trial_successes = 0
        self._trials_in_flight = 0

    def _cooled_down(self) -> bool:
        if self._opened_at is None:
            return False
        elapsed = (self._clock() - self._opened_at).total_seconds()
        return elapsed >= self.config.timeout_seconds

    @property
    def state(self) -> CircuitState:
        if self._state is CircuitState.OPEN and self._cooled_down():
            return CircuitState.HALF_OPEN
        return self._state

    async def can_execute(self) -> bool:
        async with self._lock:
            state = self.state
            if state is CircuitState.CLOSED:
                return True
            if state is CircuitState.OPEN:
                return False

            if self._trials_in_flight >= self.config.half_open_max_calls:
                return False
            self._state = CircuitState.HALF_OPEN
            self._trials_in_flight += 1
            return True

    async def record_success(self) -> None:
        async with self._lock:
            state = self.state
            if state is CircuitState.CLOSED:
                self._consecutive_failures = 0
            elif state is CircuitState.HALF_OPEN:
                self._state = CircuitState.HALF_OPEN
                self._trial_successes += 1
                self._trials_in_flight = max(0, self._trials_in_flight - 1)
                if self._trial_successes >= self.config.success_threshold:
                    self._close()

    async def record_failure(self) -> None:
        async with self._lock:
            self._consecutive_failures += 1
            if (
                self.state is CircuitState.HALF_OPEN
                or self._consecutive_failures >= self.config.failure_threshold
            ):
                self._open()

    def release_trial(self) -> None:
        """Give back a half-open trial slot whose call ended without an outcome."""
        if self._state is CircuitState.HALF_OPEN and self._trials_in_flight > 0:
            self._trials_in_flight -= 1

    async def reset(self) -> None:
        async with self._lock:
            self._close()

    def _open(self) -> None:
        logger.warning(
            "circuit_breaker_opened",
            source=self.name,
            consecutive_failures=self._consecutive_failures,
            retry_after_seconds=self.config.timeout_seconds,
        )
        self._state = CircuitState.OPEN
        self._opened_at = self._clock()
        self._trial_successes = 0
        self._trials_in_flight = 0

    def _close(self) -> None:
        if self._state is not CircuitState.CLOSED:
            logger.info("circuit_breaker_closed", source=self.name)
        self._state = CircuitState.CLOSED
        self._opened_at = None
        self._consecutive_failures = 0
        self._trial_successes = 0
        self._trials_in_flight = 0


# =============================================================================
# RETRY POLICY
# =============================================================================


@dataclass(frozen=True)
class RetryConfig:
    """Backoff for transient upstream failures (timeouts and retryable statuses)."""

    max_retries: int = 1
    base_delay_seconds: float = 0.2
    max_delay_seconds: float = 2.0
    jitter: bool = True
    retry_on_status: frozenset = frozenset({408, 429, 500, 502, 503, 504})

    def should_retry(self, attempt: int) -> bool:
        """``attempt`` is zero-based; the first request is attempt 0."""
        return attempt < self.max_retries

    def get_delay(self, attempt: int) -> float:
        delay = min(self.base_delay_seconds * 2 ** attempt, self.max_delay_seconds)
        if self.jitter:
            delay *= random.uniform(0.5, 1.5)
        return delay


# =============================================================================
# BASE CLIENT
# =============================================================================


class BaseUpstreamClient:
    """
    JSON GET client for one signal source.

    Subclasses call ``get_json`` inside a try block and hand any
    ``UpstreamError`` to ``unavailable``.
    """

    def __init__(
        self,
        base_url: str,
        client_name: str,
        timeout: float = 5.0,
        retry_config: Optional[RetryConfig] = None,
        circuit_breaker_config: Optional[CircuitBreakerConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.client_name = client_name
        self.timeout = timeout
        self.retry_config = retry_config or RetryConfig()
        self.circuit_breaker = CircuitBreaker(client_name, circuit_breaker_config)
        self.logger = logger.bind(source=client_name)

        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                headers={"Accept": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "BaseUpstreamClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _request(self, endpoint: str, params: Optional[dict] = None) -> httpx.Response:
        """
        GET ``endpoint``, retrying timeouts and transient statuses.

        Raises:
            CircuitBreakerOpenError: If the source is currently being skipped
            UpstreamTimeoutError: If every attempt timed out
            UpstreamStatusError: On a non-retryable or final error status
            UpstreamError: On any other transport failure
        """
        if not await self.circuit_breaker.can_execute():
            raise CircuitBreakerOpenError(
                f"Circuit breaker open for {self.client_name}",
                api_name=self.client_name,
            )

        # Cancellation or an unexpected error leaves no outcome on the breaker
        outcome_recorded = False
        try:
            client = await self._get_client()
            attempt = 0
            while True:
                try:
                    response = await client.get(endpoint, params=params)
                except httpx.TimeoutException as e:
                    await self.circuit_breaker.record_failure()
                    outcome_recorded = True
                    error: UpstreamError = UpstreamTimeoutError(
                        f"Request to {endpoint} timed out after {self.timeout}s",
                        api_name=self.client_name,
                    )
                    if not self.retry_config.should_retry(attempt):
                        raise error from e
                except httpx.HTTPError as e:
                    await self.circuit_breaker.record_failure()
                    outcome_recorded = True
                    self.logger.error(
                        "upstream_transport_error",
                        endpoint=endpoint,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    raise UpstreamError(
                        str(e) or type(e).__name__, api_name=self.client_name
                    ) from e
                else:
                    if response.status_code < 400:
                        await self.circuit_breaker.record_success()
                        outcome_recorded = True
                        self.logger.debug(
                            "upstream_request_ok",
                            endpoint=endpoint,
                            status_code=response.status_code,
                            attempt=attempt + 1,
                        )
                        return response

                    await self.circuit_breaker.record_failure()
                    outcome_recorded = True
                    error = UpstreamStatusError(
                        status_code=response.status_code,
                        response_body=response.text[:500],
                        api_name=self.client_name,
                    )
                    retryable = response.status_code in self.retry_config.retry_on_status
                    if not retryable or not self.retry_config.should_retry(attempt):
                        raise error

                delay = self.retry_config.get_delay(attempt)
                self.logger.warning(
                    "upstream_request_retry",
                    endpoint=endpoint,
                    attempt=attempt + 1,
                    delay=round(delay, 3),
                    reason=str(error),
                )
                await asyncio.sleep(delay)
                attempt += 1
        finally:
            if not outcome_recorded:
                self.circuit_breaker.release_trial()

    async def get_json(self, endpoint: str, params: Optional[dict] = None) -> Any:
        response = await self._request(endpoint, params)
        try:
            return response.json()
        except ValueError as e:
            raise MalformedPayloadError(
                "Response body is not valid JSON",
                status_code=response.status_code,
                api_name=self.client_name,
            ) from e

    def unavailable(self, operation: str, error: UpstreamError) -> Unavailable:
        """Log the failure and degrade to ``Unavailable``."""
        self.logger.warning(
            "upstream_unavailable",
            operation=operation,
            error=str(error),
            error_type=type(error).__name__,
            status_code=error.status_code,
        )
        return Unavailable(reason=str(error))
