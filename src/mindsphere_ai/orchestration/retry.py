"""Retry coordinator shared by every adapter call.

One policy for all backends: classify each failure, abort at once on
non-transient classes, otherwise sleep on a fixed schedule and try again
until the budget is spent. Caller cancellation is never caught, so it
does not consume the budget.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from mindsphere_ai.constants import DEFAULT_MAX_RETRIES, DEFAULT_RETRY_DELAYS
from mindsphere_ai.logging import get_logger
from mindsphere_ai.providers.base import ProviderAdapter
from mindsphere_ai.providers.errors import (
    ErrorClass,
    ProviderError,
    classify_error,
    is_retryable,
)

if TYPE_CHECKING:
    from mindsphere_ai.config import Settings

log = get_logger("mindsphere_ai.orchestration.retry")

T = TypeVar("T")


@dataclass(frozen=True)
class RetryAttempt:
    """One try within a single ``execute`` call."""

    attempt_index: int
    delay_before_s: float
    error_class: ErrorClass | None = None


@dataclass
class RetryResult(Generic[T]):
    """Outcome of ``RetryCoordinator.execute``.

    ``attempts_made`` is the index of the last attempt, i.e. the number of
    retries performed: 0 when the first try settled the call.
    """

    success: bool
    response_time_ms: float
    attempts_made: int
    data: T | None = None
    error_message: str | None = None
    error_class: ErrorClass | None = None
    error: Exception | None = None
    attempts: list[RetryAttempt] = field(default_factory=list)

    @property
    def delays(self) -> list[float]:
        """Delays slept before each retry, in order."""
        return [attempt.delay_before_s for attempt in self.attempts if attempt.attempt_index > 0]

    def unwrap(self) -> T:
        """Return ``data`` or raise the final error."""
        if self.success:
            return self.data  # type: ignore[return-value]
        if self.error is not None:
            raise self.error
        raise ProviderError(self.error_message or "Provider call failed")

    def to_dict(self) -> dict[str, object]:
        return {
            "success": self.success,
            "response_time_ms": round(self.response_time_ms, 1),
            "attempts_made": self.attempts_made,
            "error_message": self.error_message,
            "error_class": self.error_class.value if self.error_class else None,
        }


class RetryCoordinator:
    """Runs an operation with classification-driven bounded retries."""

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        delays: Sequence[float] = DEFAULT_RETRY_DELAYS,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        if max_retries < 0:
            raise ValueError(f"max_retries must not be negative, got: {max_retries}")
        if not delays:
            raise ValueError("delays must contain at least one value")
        self._max_retries = max_retries
        self._delays = tuple(delays)
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryCoordinator:
        return cls(max_retries=settings.retry_max_retries, delays=settings.retry_delays)

    @property
    def max_retries(self) -> int:
        return self._max_retries

    def delay_for(self, attempt_index: int) -> float:
        """Delay before ``attempt_index``; the last entry repeats past the schedule."""
        if attempt_index <= 0:
            return 0.0
        return self._delays[min(attempt_index - 1, len(self._delays) - 1)]

    async def execute(
        self,
        adapter: ProviderAdapter | str,
        operation: Callable[[], Awaitable[T]],
        *,
        should_retry: Callable[[Exception], bool] | None = None,
    ) -> RetryResult[T]:
        """Run ``operation`` until it succeeds or the policy gives up.

        Args:
            adapter: The adapter (or its name) the operation talks to.
            operation: Zero-argument coroutine factory, called once per attempt.
            should_retry: Optional veto for otherwise retryable failures.

        Returns:
            A ``RetryResult``; failures are reported, not raised.
        """
        provider = adapter if isinstance(adapter, str) else adapter.name
        started = time.monotonic()
        attempts: list[RetryAttempt] = []
        attempt = 0

        while True:
            delay = self.delay_for(attempt)
            if attempt > 0:
                await self._sleep(delay)

            try:
                data = await operation()
            except Exception as e:
                error_class = classify_error(e)
                attempts.append(RetryAttempt(attempt, delay, error_class))
                retryable = is_retryable(error_class) and (
                    should_retry is None or should_retry(e)
                )
                if retryable and attempt < self._max_retries:
                    log.warning(
                        "retry_scheduled",
                        provider=provider,
                        attempt=attempt,
                        error_class=error_class.value,
                        next_delay=self.delay_for(attempt + 1),
                        error=str(e),
                    )
                    attempt += 1
                    continue

                message = self._failure_message(e, error_class, attempt, retryable)
                log.error(
                    "provider_call_failed",
                    provider=provider,
                    attempts_made=attempt,
                    error_class=error_class.value,
                    error=message,
                )
                return RetryResult(
                    success=False,
                    response_time_ms=(time.monotonic() - started) * 1000,
                    attempts_made=attempt,
                    error_message=message,
                    error_class=error_class,
                    error=e,
                    attempts=attempts,
                )

            attempts.append(RetryAttempt(attempt, delay))
            if attempt:
                log.info("provider_call_recovered", provider=provider, attempts_made=attempt)
            return RetryResult(
                success=True,
                response_time_ms=(time.monotonic() - started) * 1000,
                attempts_made=attempt,
                data=data,
                attempts=attempts,
            )

    @staticmethod
    def _failure_message(
        error: Exception, error_class: ErrorClass, attempt: int, retryable: bool
    ) -> str:
        if error_class == ErrorClass.RATE_LIMITED and retryable:
            return (
                f"Rate limit exceeded after {attempt + 1} attempts. "
                "Please wait a few minutes before trying again."
            )
        if retryable and attempt:
            return f"{error} (gave up after {attempt + 1} attempts)"
        return str(error)
