"""Batch engines for the status migrator.

Provides cursor pagination, bounded-concurrency bulk mutation with
per-item retry, and event-driven progress notification.
"""

from src.orchestrator.batch.events import JobEventEmitter, JobEventObserver
from src.orchestrator.batch.models import (
    FailureKind,
    MutationFailure,
    MutationOutcome,
    SearchResult,
)
from src.orchestrator.batch.mutator import BatchMutator
from src.orchestrator.batch.paginator import OrderPaginator, build_status_query
from src.orchestrator.batch.retry import RetryExhausted, RetryPolicy, call_with_retry

__all__ = [
    "JobEventObserver",
    "JobEventEmitter",
    "SearchResult",
    "MutationOutcome",
    "MutationFailure",
    "FailureKind",
    "OrderPaginator",
    "build_status_query",
    "BatchMutator",
    "RetryPolicy",
    "RetryExhausted",
    "call_with_retry",
]
