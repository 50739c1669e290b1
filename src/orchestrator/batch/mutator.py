"""Batch mutator: apply a financial status to many orders concurrently.

Fans out set_financial_status calls bounded by a semaphore, retries
rate-limited and transient failures per item, and folds every result
into a single MutationOutcome.

Example:
    mutator = BatchMutator(client, concurrency=5)
    outcome = await mutator.apply_status_change(result.items, FinancialStatus.PAID)
    print(outcome.succeeded_count, outcome.failed_count)
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Sequence

from src.clients.base import OrderAPIClient
from src.clients.models import FinancialStatus, OrderRecord
from src.errors.domain import EmptyTargetSet, ValidationError
from src.orchestrator.batch.models import FailureKind, MutationFailure, MutationOutcome
from src.orchestrator.batch.retry import RetryExhausted, RetryPolicy, Sleep, call_with_retry
from src.utils.redaction import sanitize_error_message

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 5

# Callback type for per-item progress reporting
ProgressCallback = Callable[..., Awaitable[None]]


class BatchMutator:
    """Applies one target status to a set of orders.

    Performs no local "already updated" tracking: re-running a batch
    re-sends every call and relies on the remote treating a repeated
    status as a no-op success.

    Attributes:
        _client: Remote order API client, shared by all in-flight calls
        _concurrency: Default maximum of simultaneous calls
        _retry: Per-item retry policy
    """

    def __init__(
        self,
        client: OrderAPIClient,
        concurrency: int = DEFAULT_CONCURRENCY,
        retry_policy: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize batch mutator.

        Args:
            client: Remote order API client
            concurrency: Default fan-out width
            retry_policy: Retry policy for each item
            sleep: Injected sleep used between retries
        """
        self._client = client
        self._concurrency = concurrency
        if self._concurrency < 1:
            raise ValidationError(f"concurrency must be >= 1, got {self._concurrency}")
        self._retry = retry_policy or RetryPolicy()
        self._sleep = sleep

    async def apply_status_change(
        self,
        targets: Sequence[OrderRecord],
        to_status: FinancialStatus | str,
        concurrency: int | None = None,
        cancel_event: asyncio.Event | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> MutationOutcome:
        """Set ``to_status`` on every target order.

        Every target is attempted exactly once (retries belong to the same
        attempt). Completion order is not preserved; the outcome is a pair
        of sets.

        Args:
            targets: Orders to update; duplicate ids collapse to one attempt.
            to_status: Status to set.
            concurrency: Override for this batch's fan-out width.
            cancel_event: When set, orders not yet dispatched are recorded
                as Cancelled; in-flight calls drain.
            on_progress: Optional async callback, called as
                ``on_progress("item_succeeded", order_id=..., attempts=...)`` or
                ``on_progress("item_failed", order_id=..., kind=..., message=...)``.

        Returns:
            MutationOutcome partitioning the targets into succeeded/failed.

        Raises:
            EmptyTargetSet: ``targets`` is empty.
            ValidationError: Invalid status or concurrency.
        """
        status = FinancialStatus.parse(to_status)
        width = self._concurrency if concurrency is None else concurrency
        if width < 1:
            raise ValidationError(f"concurrency must be >= 1, got {width}")

        unique: dict[str, OrderRecord] = {}
        for order in targets:
            unique.setdefault(order.id, order)
        if not unique:
            raise EmptyTargetSet()

        semaphore = asyncio.Semaphore(width)
        results_lock = asyncio.Lock()
        succeeded: set[str] = set()
        failed: dict[str, MutationFailure] = {}
        item_durations: list[float] = []
        started = time.perf_counter()

        async def _record_failure(order_id: str, failure: MutationFailure) -> None:
            async with results_lock:
                failed[order_id] = failure
                if on_progress:
                    await on_progress(
                        "item_failed",
                        order_id=order_id,
                        kind=failure.kind,
                        message=failure.message,
                    )

        async def _process(order: OrderRecord) -> None:
            """Update one order with retry, bounded by the semaphore."""
            async with semaphore:
                if cancel_event is not None and cancel_event.is_set():
                    await _record_failure(
                        order.id,
                        MutationFailure(
                            kind=FailureKind.CANCELLED,
                            message="Not sent: job cancelled",
                            attempts=0,
                        ),
                    )
                    return

                item_started = time.perf_counter()
                try:
                    _, attempts = await call_with_retry(
                        lambda: self._client.set_financial_status(order.id, status),
                        self._retry,
                        description=f"set_financial_status({order.name or order.id})",
                        sleep=self._sleep,
                    )
                except RetryExhausted as e:
                    logger.warning(
                        "Order %s failed after %d attempt(s): %s",
                        order.id, e.attempts, e.error,
                    )
                    await _record_failure(
                        order.id,
                        MutationFailure(
                            kind=e.error.kind,
                            message=e.error.message,
                            attempts=e.attempts,
                        ),
                    )
                    return
                except Exception as e:
                    # Client bug or unexpected error: fail this order, keep the batch going
                    err_msg = str(e) or f"{type(e).__name__} (no message)"
                    logger.error(
                        "Unexpected error updating order %s: %s [%s]",
                        order.id, err_msg, type(e).__name__,
                    )
                    await _record_failure(
                        order.id,
                        MutationFailure(
                            kind=FailureKind.FATAL,
                            message=sanitize_error_message(err_msg, max_length=500) or err_msg,
                        ),
                    )
                    return
                finally:
                    item_durations.append(time.perf_counter() - item_started)

                async with results_lock:
                    succeeded.add(order.id)
                    if on_progress:
                        await on_progress(
                            "item_succeeded", order_id=order.id, attempts=attempts,
                        )

        # Process all orders concurrently (bounded by semaphore)
        await asyncio.gather(*[_process(order) for order in unique.values()])

        outcome = MutationOutcome(
            to_status=status,
            attempted=tuple(unique),
            succeeded=frozenset(succeeded),
            failed=failed,
        )

        total_elapsed = time.perf_counter() - started
        avg_item = (sum(item_durations) / len(item_durations)) if item_durations else 0.0
        logger.info(
            "Batch update timing: to_status=%s items=%d succeeded=%d failed=%d "
            "concurrency=%d total=%.2fs avg_item=%.2fs",
            status.value,
            outcome.total,
            outcome.succeeded_count,
            outcome.failed_count,
            width,
            total_elapsed,
            avg_item,
        )
        return outcome

