"""Typed domain exceptions for the status-migration engine.

These exceptions give callers (CLI, HTTP routes) a stable contract:
catch a specific type and map it to an exit code or HTTP status instead
of matching on message strings.

Usage:
    # In the orchestrator
    raise UpdateRejected("Job is 'searching', expected 'searched'")

    # In a route handler
    try:
        orchestrator.start_update(job, to_status)
    except UpdateRejected as e:
        raise HTTPException(status_code=409, detail=str(e))
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.clients.errors import OrderAPIError


class DomainError(Exception):
    """Base exception for all domain errors."""

    code = "E-4001"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(DomainError):
    """Bad filter or status input, rejected before any remote call. Maps to HTTP 400."""

    code = "E-1001"


class NotFoundError(DomainError):
    """Resource was not found. Maps to HTTP 404."""

    code = "E-2004"

    def __init__(self, resource_type: str, identifier: str) -> None:
        super().__init__(f"{resource_type} '{identifier}' not found")
        self.resource_type = resource_type
        self.identifier = identifier


class UpdateRejected(DomainError):
    """Update attempted from the wrong phase or against no targets. Maps to HTTP 409."""

    code = "E-2001"


class EmptyTargetSet(UpdateRejected):
    """Update requested with zero target orders."""

    code = "E-2002"

    def __init__(self) -> None:
        super().__init__("No orders to update: the target set is empty")


class JobCancelled(DomainError):
    """The caller cancelled the job before the phase completed."""

    code = "E-2003"

    def __init__(self, phase: str) -> None:
        super().__init__(f"Job cancelled during '{phase}'")
        self.phase = phase


class SearchFailed(DomainError):
    """Pagination aborted by a remote error.

    The partially accumulated result is discarded; only the count of items
    fetched before the failure is kept for reporting.

    Attributes:
        cause: The client error that aborted pagination.
        items_fetched: Number of orders accumulated before the abort.
    """

    code = "E-3100"

    def __init__(self, cause: "OrderAPIError", items_fetched: int = 0) -> None:
        super().__init__(f"search failed: {cause}")
        self.cause = cause
        self.items_fetched = items_fetched
