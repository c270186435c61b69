"""
Retry policies and a generic retry-with-policy helper.

Provides:
- BackoffPolicy: exponential backoff with additive jitter, capped
- FixedDelayPolicy: constant pause between attempts
- retry_with_policy: wraps any zero-arg coroutine factory with a policy

The fetch client, the video reconciler, the notification emitter and
account loading all retry through retry_with_policy so that attempt
counting, logging and sleeping live in one place.
"""

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol, TypeVar

import structlog

from src.observability.metrics import get_metrics

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class RetryPolicy(Protocol):
    """Anything that knows how many retries to allow and how long to wait."""

    max_retries: int

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait before retry attempt ``attempt`` (1-indexed)."""
        ...


@dataclass(frozen=True)
class BackoffPolicy:
    """
    Exponential backoff with jitter for outbound HTTP calls.

    Formula: min(base_delay * 2^attempt + uniform(0, jitter), max_delay)

    With the defaults the waits before retries 1, 2 and 3 fall in
    [2, 3), [4, 5) and [8, 9) seconds; nothing ever exceeds max_delay.
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    jitter: float = 1.0

    def delay_for(self, attempt: int) -> float:
        """
        Calculate the delay before a retry attempt.

        Args:
            attempt: Retry attempt number (1 for the first retry)

        Returns:
            Delay in seconds, jitter included, capped at max_delay
        """
        delay = self.base_delay * (2**attempt)
        if self.jitter > 0:
            delay += random.uniform(0, self.jitter)
        return min(delay, self.max_delay)


@dataclass(frozen=True)
class FixedDelayPolicy:
    """Constant pause between attempts, for the trusted local backend."""

    max_retries: int = 2
    delay: float = 1.0

    def delay_for(self, attempt: int) -> float:
        return self.delay


def _always(exc: BaseException) -> bool:
    return True


async def retry_with_policy(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    is_retryable: Callable[[BaseException], bool] = _always,
    context: str = "",
) -> T:
    """
    Run ``operation`` until it succeeds or the policy is exhausted.

    Args:
        operation: Zero-arg callable returning a fresh awaitable per attempt
        policy: Retry policy (max_retries extra attempts after the first)
        is_retryable: Classifier; non-retryable errors propagate immediately
        context: Label included in retry log lines and metrics

    Returns:
        The operation's result

    Raises:
        The last error raised by ``operation`` once retries are exhausted,
        or the first non-retryable error.
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as e:
            if attempt >= policy.max_retries or not is_retryable(e):
                raise

            attempt += 1
            delay = policy.delay_for(attempt)
            logger.warning(
                "Retrying after failure",
                context=context,
                error=str(e) or type(e).__name__,
                status_code=getattr(e, "status_code", None),
                delay_seconds=round(delay, 3),
                attempt=attempt,
                max_retries=policy.max_retries,
            )
            get_metrics().record_retry(context)
            await asyncio.sleep(delay)
