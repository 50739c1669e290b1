"""Data models for search and bulk-update results.

Both result types are frozen: a new search or update produces a new
object rather than mutating an old one. Their invariants are checked on
construction so an inconsistent result can never be handed to a caller.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from src.clients.models import FinancialStatus, OrderRecord


class FailureKind:
    """Reason codes recorded for orders that could not be updated."""

    RATE_LIMITED = "RateLimited"
    TRANSIENT = "Transient"
    UNAUTHORIZED = "Unauthorized"
    VALIDATION_FAILED = "ValidationFailed"
    FATAL = "Fatal"
    CANCELLED = "Cancelled"


@dataclass(frozen=True)
class SearchResult:
    """Orders matching a financial-status filter, in remote page order."""

    from_status: FinancialStatus
    """The filter that produced this result."""

    items: tuple[OrderRecord, ...] = ()
    """Matched orders in the order the remote API returned them."""

    has_more: bool = False
    """True when the remote holds more matches than the configured cap."""

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", tuple(self.items))
        ids = [item.id for item in self.items]
        if len(ids) != len(set(ids)):
            raise ValueError("SearchResult items must have unique ids")

    @property
    def count(self) -> int:
        """Number of matched orders held."""
        return len(self.items)

    @property
    def ids(self) -> list[str]:
        """Order ids in page order."""
        return [item.id for item in self.items]


@dataclass(frozen=True)
class MutationFailure:
    """Why a single order could not be updated."""

    kind: str
    """One of the FailureKind codes."""

    message: str
    """Human-readable error description."""

    attempts: int = 1
    """Remote calls made for this order (0 when it was never dispatched)."""


@dataclass(frozen=True)
class MutationOutcome:
    """Result of one bulk status update.

    Every attempted id lands in exactly one of ``succeeded`` or ``failed``.
    A non-empty ``failed`` is a partial failure, not an engine failure.
    """

    to_status: FinancialStatus
    """Status the batch tried to set."""

    attempted: tuple[str, ...]
    """Order ids in target order, each exactly once."""

    succeeded: frozenset[str] = frozenset()
    """Ids the remote accepted."""

    failed: Mapping[str, MutationFailure] = field(default_factory=dict)
    """Ids that failed, mapped to their failure reason."""

    def __post_init__(self) -> None:
        object.__setattr__(self, "attempted", tuple(self.attempted))
        object.__setattr__(self, "succeeded", frozenset(self.succeeded))
        object.__setattr__(self, "failed", MappingProxyType(dict(self.failed)))

        attempted = set(self.attempted)
        if len(attempted) != len(self.attempted):
            raise ValueError("MutationOutcome.attempted must not repeat ids")
        failed_ids = set(self.failed)
        if self.succeeded & failed_ids:
            raise ValueError("An id cannot be both succeeded and failed")
        if self.succeeded | failed_ids != attempted:
            raise ValueError("succeeded and failed must partition the attempted ids")

    @property
    def total(self) -> int:
        return len(self.attempted)

    @property
    def succeeded_count(self) -> int:
        return len(self.succeeded)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    @property
    def has_failures(self) -> bool:
        """True for a partial failure."""
        return bool(self.failed)

    def failures_by_kind(self) -> dict[str, list[str]]:
        """Group failed ids by failure kind, preserving target order."""
        grouped: dict[str, list[str]] = {}
        for order_id in self.attempted:
            failure = self.failed.get(order_id)
            if failure is not None:
                grouped.setdefault(failure.kind, []).append(order_id)
        return grouped
