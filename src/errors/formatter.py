"""Error formatting and grouping utilities.

This module provides:
- MigratorError, a display record built from a registry code
- Error formatting for user display
- Grouping of per-order failures by kind
- One-line job summaries for the CLI and HTTP API
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Mapping

from src.errors.domain import DomainError, JobCancelled, SearchFailed
from src.errors.registry import code_for_kind, get_error

if TYPE_CHECKING:
    from src.clients.errors import OrderAPIError
    from src.orchestrator.batch.models import MutationOutcome
    from src.orchestrator.job import Job

# Order names listed per failure group before eliding
MAX_LISTED_ORDERS = 10


@dataclass
class MigratorError:
    """User-facing error with code, message, and context.

    Attributes:
        code: Error code in E-XXXX format.
        message: Human-readable error message.
        remediation: Action user should take to resolve.
        orders: Affected order names (or ids when the name is unknown).
        is_retryable: Whether the operation can be retried without user action.
    """

    code: str
    message: str
    remediation: str
    orders: list[str] = field(default_factory=list)
    is_retryable: bool = False

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"

    @classmethod
    def from_code(cls, code: str, **kwargs: object) -> "MigratorError":
        """Create error from registry code with context substitution.

        Args:
            code: Error code in E-XXXX format.
            **kwargs: Context values for message template substitution.
                The special key 'orders' fills the affected order list.

        Returns:
            MigratorError instance with formatted message.
        """
        orders = kwargs.pop("orders", [])
        if not isinstance(orders, list):
            orders = []

        error_def = get_error(code)
        if not error_def:
            return cls(
                code=code,
                message=f"Unknown error: {code}",
                remediation="Contact support.",
                orders=orders,
            )

        message = error_def.message_template
        try:
            message = message.format(**kwargs)
        except KeyError:
            # Keep template if some placeholders are missing
            pass

        return cls(
            code=error_def.code,
            message=message,
            remediation=error_def.remediation,
            orders=orders,
            is_retryable=error_def.is_retryable,
        )

    @classmethod
    def from_exception(cls, error: "DomainError | OrderAPIError") -> "MigratorError":
        """Build a display error from a domain or client exception."""
        if isinstance(error, SearchFailed):
            return cls.from_code(
                error.code, items_fetched=error.items_fetched, cause=error.cause,
            )
        if isinstance(error, DomainError):
            built = cls.from_code(
                error.code,
                value=error.message,
                details=error.message,
                phase=getattr(error, "phase", ""),
                job_id=getattr(error, "identifier", ""),
            )
            if error.code in ("E-1001", "E-2001", "E-4001"):
                built.message = error.message
            return built
        # OrderAPIError
        return cls.from_code(code_for_kind(error.kind), details=error.message)


def format_error(error: MigratorError, include_remediation: bool = True) -> str:
    """Format error for display to user.

    Args:
        error: The MigratorError to format.
        include_remediation: Whether to include remediation steps.

    Returns:
        Multi-line formatted string suitable for user display.
    """
    lines = [f"{error.code}: {error.message}"]

    if error.orders:
        if len(error.orders) == 1:
            lines.append(f"  Order: {error.orders[0]}")
        else:
            orders_str = ", ".join(error.orders[:MAX_LISTED_ORDERS])
            if len(error.orders) > MAX_LISTED_ORDERS:
                orders_str += f" (and {len(error.orders) - MAX_LISTED_ORDERS} more)"
            lines.append(f"  Affected orders: {orders_str}")

    if include_remediation:
        lines.append(f"  Action: {error.remediation}")

    return "\n".join(lines)


def group_failures(
    outcome: "MutationOutcome",
    names: Mapping[str, str] | None = None,
) -> list[MigratorError]:
    """Group per-order failures by kind, combining affected orders.

    Example:
        3 orders rejected with ValidationFailed and 1 RateLimited
        -> 2 errors, the first listing 3 orders

    Args:
        outcome: Bulk update result.
        names: Optional order id -> display name (e.g. '#1001').

    Returns:
        One MigratorError per failure kind, in first-seen order.
    """
    names = names or {}
    grouped: list[MigratorError] = []
    for kind, order_ids in outcome.failures_by_kind().items():
        first = outcome.failed[order_ids[0]]
        grouped.append(
            MigratorError.from_code(
                code_for_kind(kind),
                details=first.message,
                phase="updating",
                orders=[names.get(order_id, order_id) for order_id in order_ids],
            )
        )
    return grouped


def format_failure_summary(
    outcome: "MutationOutcome",
    names: Mapping[str, str] | None = None,
) -> str:
    """Compact failure breakdown, e.g. 'ValidationFailed (1): #1002'.

    Returns:
        Groups joined by '; ', or an empty string when nothing failed.
    """
    names = names or {}
    parts = []
    for kind, order_ids in outcome.failures_by_kind().items():
        listed = [names.get(order_id, order_id) for order_id in order_ids[:MAX_LISTED_ORDERS]]
        text = f"{kind} ({len(order_ids)}): {', '.join(listed)}"
        if len(order_ids) > MAX_LISTED_ORDERS:
            text += f" (and {len(order_ids) - MAX_LISTED_ORDERS} more)"
        parts.append(text)
    return "; ".join(parts)


def _plural(count: int, noun: str = "order") -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def format_job_summary(job: "Job") -> str:
    """One-line report of a job's state.

    Examples:
        '3 orders found'
        '1000 orders found (more available; showing the first 1000)'
        'search failed: RateLimited: Throttled'
        'Successfully updated 3 orders'
        '2 of 3 orders updated, 1 failed: ValidationFailed (1): #1002'
    """
    phase = job.phase.value
    label = job.from_status.label

    if phase == "idle":
        return "Idle"
    if phase == "searching":
        return f"Searching for {label} orders..."
    if phase == "searched":
        text = f"{_plural(job.item_count)} found"
        if job.has_more:
            text += f" (more available; showing the first {job.item_count})"
        return text
    if phase == "updating":
        target = job.to_status.label if job.to_status else "new status"
        return f"Updating {_plural(job.item_count)} to {target}..."
    if phase == "updated" and job.outcome is not None:
        outcome = job.outcome
        if not outcome.has_failures:
            return f"Successfully updated {_plural(outcome.succeeded_count)}"
        names = {order.id: order.name for order in job.search_result.items} if job.search_result else {}
        return (
            f"{outcome.succeeded_count} of {_plural(outcome.total)} updated, "
            f"{outcome.failed_count} failed: {format_failure_summary(outcome, names)}"
        )

    # failed
    error = job.error
    if isinstance(error, SearchFailed):
        return str(error)
    if isinstance(error, JobCancelled):
        return f"cancelled during '{error.phase}'"
    if error is not None:
        return f"failed: {error.message}"
    return "failed"
