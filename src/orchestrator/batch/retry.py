"""Retry with exponential backoff for remote order API calls.

Shared by the paginator and the batch mutator. Only errors the client
marks ``retryable`` (RateLimited, Transient) are retried; a per-call
timeout is converted to Transient first so it follows the same policy.

Example:
    policy = RetryPolicy(max_attempts=3, base_delay=0.5)
    page = await call_with_retry(
        lambda: client.fetch_orders_page(query, cursor, 250),
        policy,
        description="fetch_orders_page",
    )
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from src.clients.errors import OrderAPIError, Transient

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff policy.

    Attributes:
        max_attempts: Total calls per item, first call included.
        base_delay: Delay in seconds before the second call.
        backoff_factor: Multiplier applied for each further call.
        call_timeout: Per-call timeout in seconds (None disables it).
    """

    max_attempts: int = 3
    base_delay: float = 0.5
    backoff_factor: float = 2.0
    call_timeout: float | None = 10.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0 or self.backoff_factor < 1:
            raise ValueError("base_delay must be >= 0 and backoff_factor >= 1")

    def delay_for(self, attempt: int, retry_after: float | None = None) -> float:
        """Delay before the call following ``attempt`` (1-based).

        A server-provided ``retry_after`` raises the delay, never lowers it.
        """
        delay = self.base_delay * (self.backoff_factor ** (attempt - 1))
        if retry_after is not None:
            delay = max(delay, retry_after)
        return delay


class RetryExhausted(Exception):
    """Wraps the last client error once every attempt has failed.

    Attributes:
        error: The last OrderAPIError raised.
        attempts: Number of calls made.
    """

    def __init__(self, error: OrderAPIError, attempts: int) -> None:
        self.error = error
        self.attempts = attempts
        super().__init__(f"{error} (after {attempts} attempts)")


async def call_with_retry(
    call: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    description: str = "remote call",
    sleep: Sleep = asyncio.sleep,
) -> tuple[T, int]:
    """Run ``call`` under ``policy``.

    Args:
        call: Zero-argument coroutine factory; invoked once per attempt.
        policy: Retry policy to apply.
        description: Label used in log lines.
        sleep: Injected sleep (tests pass a no-op).

    Returns:
        Tuple of (result, attempts used).

    Raises:
        RetryExhausted: The call failed with a client error, either
            non-retryable or after the last attempt.
    """
    for attempt in range(1, policy.max_attempts + 1):
        try:
            if policy.call_timeout is None:
                result = await call()
            else:
                result = await asyncio.wait_for(call(), timeout=policy.call_timeout)
            return result, attempt
        except asyncio.TimeoutError:
            error: OrderAPIError = Transient(
                f"{description} timed out after {policy.call_timeout:.1f}s"
            )
        except OrderAPIError as e:
            error = e

        if not error.retryable or attempt >= policy.max_attempts:
            raise RetryExhausted(error, attempt)

        delay = policy.delay_for(attempt, error.retry_after)
        logger.warning(
            "%s returned retryable error (attempt %d/%d), retrying in %.1fs: %s",
            description, attempt, policy.max_attempts, delay, error,
        )
        await sleep(delay)

    # Unreachable: the loop either returns or raises on the last attempt
    raise AssertionError("retry loop exited without a result")
