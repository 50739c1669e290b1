"""Orchestration layer for bulk financial-status migration.

Main Entry Points:
    JobOrchestrator: Sequences search and update phases per job.
    Job / JobPhase: The job record and its lifecycle phase.

Supporting Engines:
    OrderPaginator: Drains a status search into a SearchResult.
    BatchMutator: Applies a status to many orders concurrently.
"""

from src.orchestrator.batch.models import (
    FailureKind,
    MutationFailure,
    MutationOutcome,
    SearchResult,
)
from src.orchestrator.batch.mutator import BatchMutator
from src.orchestrator.batch.paginator import OrderPaginator
from src.orchestrator.batch.retry import RetryPolicy
from src.orchestrator.job import (
    VALID_TRANSITIONS,
    InvalidStateTransition,
    Job,
    JobOrchestrator,
    JobPhase,
)

__all__ = [
    # Main entry points
    "JobOrchestrator",
    "Job",
    "JobPhase",
    "InvalidStateTransition",
    "VALID_TRANSITIONS",
    # Engines
    "OrderPaginator",
    "BatchMutator",
    "RetryPolicy",
    # Result models
    "SearchResult",
    "MutationOutcome",
    "MutationFailure",
    "FailureKind",
]
