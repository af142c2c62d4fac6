"""Bounded retry envelope for document store calls.

Every remote call runs through ``RetryingCaller.call``:
- Failure = transport error, non-2xx status, or a body with ``ok: false``
- Delay before retry n (1-based) is ``base_delay_ms * n``
- Attempts run sequentially; no state is shared between calls
- Failures come back as data (``CallResult``), not exceptions
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

import httpx

T = TypeVar("T")


class StoreRequestError(Exception):
    """Remote call failed; ``message`` is safe to show to the operator."""

    def __init__(self, message: str, status_code: int | None = None, operation: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.operation = operation

    @property
    def reason(self) -> str:
        """Short label for metrics/logs."""
        if self.status_code is None:
            return "transport"
        if self.status_code < 300:
            return "rejected"
        return f"http_{self.status_code}"


@dataclass(frozen=True)
class BackoffPolicy:
    """How many times to retry and how long to wait between attempts."""

    retry_count: int = 1
    base_delay_ms: int = 250

    def delay_s(self, retry_number: int) -> float:
        """Seconds to wait before retry ``retry_number`` (1-based)."""
        return self.base_delay_ms * retry_number / 1000

    @property
    def max_attempts(self) -> int:
        return max(0, self.retry_count) + 1


NO_RETRY = BackoffPolicy(retry_count=0)


@dataclass(frozen=True)
class CallResult(Generic[T]):
    """Outcome of one logical remote call."""

    value: T | None = None
    error: StoreRequestError | None = None
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


# Metrics interface (no-op default)
class RequestMetrics:
    """Interface for store request metrics."""

    def record_latency(self, operation: str, outcome: str, latency_ms: float) -> None:
        pass

    def inc_error(self, operation: str, reason: str) -> None:
        pass

    def inc_retry(self, operation: str) -> None:
        pass


# Logging interface (no-op default)
class RequestLogger:
    """Interface for structured request logging."""

    def log_attempt(
        self,
        operation: str,
        attempt: int,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        pass


class RetryingCaller:
    """Runs a request function under a BackoffPolicy."""

    def __init__(
        self,
        metrics: RequestMetrics | None = None,
        logger: RequestLogger | None = None,
        sleep_fn: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        """Initialize caller.

        Args:
            metrics: Metrics recorder (optional, defaults to no-op)
            logger: Structured logger (optional, defaults to no-op)
            sleep_fn: Injectable sleep function (default: asyncio.sleep)
        """
        self._metrics = metrics or RequestMetrics()
        self._logger = logger or RequestLogger()
        self._sleep = sleep_fn or asyncio.sleep

    async def call(
        self,
        fn: Callable[[], Awaitable[T]],
        policy: BackoffPolicy,
        operation: str = "request",
    ) -> CallResult[T]:
        """Call ``fn`` until it succeeds or the policy is exhausted.

        ``fn`` signals failure by raising StoreRequestError; httpx transport
        errors are converted to StoreRequestError. Any other exception is a
        bug and propagates.
        """
        last_error: StoreRequestError | None = None
        attempts = 0
        for attempt in range(policy.max_attempts):
            if attempt > 0:
                self._metrics.inc_retry(operation)
                await self._sleep(policy.delay_s(attempt))

            attempts = attempt + 1
            attempt_start = time.monotonic()
            try:
                value = await fn()
            except StoreRequestError as e:
                last_error = e
            except httpx.HTTPError as e:
                last_error = StoreRequestError(
                    f"Network error: {type(e).__name__}", operation=operation
                )
            else:
                elapsed_ms = (time.monotonic() - attempt_start) * 1000
                self._metrics.record_latency(operation, "success", elapsed_ms)
                self._logger.log_attempt(operation, attempts, "success", elapsed_ms)
                return CallResult(value=value, attempts=attempts)

            if not last_error.operation:
                last_error.operation = operation
            elapsed_ms = (time.monotonic() - attempt_start) * 1000
            self._metrics.record_latency(operation, "error", elapsed_ms)
            self._metrics.inc_error(operation, last_error.reason)
            self._logger.log_attempt(
                operation, attempts, "error", elapsed_ms, error_reason=last_error.reason
            )

        return CallResult(error=last_error, attempts=attempts)
