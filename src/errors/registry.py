"""Error code registry with E-XXXX format codes.

Organizes every error the migrator can report into categories:
- E-1xxx: Input validation errors (rejected before any remote call)
- E-2xxx: Job protocol errors (wrong phase, empty target set, cancelled)
- E-3xxx: Remote order API errors
- E-4xxx: System/internal errors

Each error includes a code, title, message template, and remediation steps.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCategory(str, Enum):
    """Categories for error codes."""

    VALIDATION = "validation"  # E-1xxx
    PROTOCOL = "protocol"  # E-2xxx
    REMOTE_API = "remote_api"  # E-3xxx
    SYSTEM = "system"  # E-4xxx


@dataclass
class ErrorCode:
    """Definition of an error code with metadata.

    Attributes:
        code: Error code in E-XXXX format.
        category: Error category for grouping.
        title: Short title for display.
        message_template: Message with {placeholders} for context.
        remediation: Action user should take to resolve.
        is_retryable: Whether the operation can be retried without user action.
    """

    code: str
    category: ErrorCategory
    title: str
    message_template: str
    remediation: str
    is_retryable: bool = False


ERROR_REGISTRY: dict[str, ErrorCode] = {
    # Validation errors (E-1xxx)
    "E-1001": ErrorCode(
        code="E-1001",
        category=ErrorCategory.VALIDATION,
        title="Invalid Input",
        message_template="Invalid value: {value}.",
        remediation=(
            "Use one of: authorized, paid, pending, partially_paid, "
            "partially_refunded, refunded, voided. Limits must be positive."
        ),
    ),
    # Protocol errors (E-2xxx)
    "E-2001": ErrorCode(
        code="E-2001",
        category=ErrorCategory.PROTOCOL,
        title="Update Rejected",
        message_template="Update not allowed while the job is '{phase}'.",
        remediation="Run a new search and wait for it to finish before updating.",
    ),
    "E-2002": ErrorCode(
        code="E-2002",
        category=ErrorCategory.PROTOCOL,
        title="No Orders To Update",
        message_template="The search matched no orders.",
        remediation="Search for a different financial status.",
    ),
    "E-2003": ErrorCode(
        code="E-2003",
        category=ErrorCategory.PROTOCOL,
        title="Job Cancelled",
        message_template="The job was cancelled during '{phase}'.",
        remediation="Start a new search when ready. Orders already updated keep their new status.",
    ),
    "E-2004": ErrorCode(
        code="E-2004",
        category=ErrorCategory.PROTOCOL,
        title="Job Not Found",
        message_template="Job '{job_id}' does not exist or was discarded.",
        remediation="Start a new search.",
    ),
    # Remote API errors (E-3xxx)
    "E-3001": ErrorCode(
        code="E-3001",
        category=ErrorCategory.REMOTE_API,
        title="Rate Limit Exceeded",
        message_template="The store API rejected calls because the rate limit was exceeded.",
        remediation="Wait a minute and retry, or lower the update concurrency.",
        is_retryable=True,
    ),
    "E-3002": ErrorCode(
        code="E-3002",
        category=ErrorCategory.REMOTE_API,
        title="Store API Unavailable",
        message_template="The store API timed out or returned a server error.",
        remediation="Retry in a few minutes. Check the platform status page if it persists.",
        is_retryable=True,
    ),
    "E-3003": ErrorCode(
        code="E-3003",
        category=ErrorCategory.REMOTE_API,
        title="Not Authorized",
        message_template="The access token was rejected or lacks the required scope.",
        remediation="Check the access token and that the app has read_orders/write_orders scopes.",
    ),
    "E-3004": ErrorCode(
        code="E-3004",
        category=ErrorCategory.REMOTE_API,
        title="Change Refused",
        message_template="The store refused to change this order: {details}",
        remediation="Review the order in the store admin; it may be cancelled, archived, or locked.",
    ),
    "E-3005": ErrorCode(
        code="E-3005",
        category=ErrorCategory.REMOTE_API,
        title="Unexpected API Response",
        message_template="The store API returned an unexpected response: {details}",
        remediation="Contact support with error code E-3005 and the message above.",
    ),
    "E-3100": ErrorCode(
        code="E-3100",
        category=ErrorCategory.REMOTE_API,
        title="Search Failed",
        message_template="Order search stopped after {items_fetched} orders: {cause}",
        remediation="Fix the cause above and search again. Partial results are not shown.",
    ),
    # System errors (E-4xxx)
    "E-4001": ErrorCode(
        code="E-4001",
        category=ErrorCategory.SYSTEM,
        title="Internal Error",
        message_template="Unexpected error: {details}",
        remediation="Retry the operation. Contact support if the issue persists.",
    ),
}

# Client error kind / failure kind -> registry code
KIND_TO_CODE: dict[str, str] = {
    "RateLimited": "E-3001",
    "Transient": "E-3002",
    "Unauthorized": "E-3003",
    "ValidationFailed": "E-3004",
    "Fatal": "E-3005",
    "Cancelled": "E-2003",
}


def get_error(code: str) -> ErrorCode | None:
    """Get error definition by code.

    Args:
        code: Error code in E-XXXX format.

    Returns:
        ErrorCode if found, None otherwise.
    """
    return ERROR_REGISTRY.get(code)


def get_errors_by_category(category: ErrorCategory) -> list[ErrorCode]:
    """Get all errors in a category."""
    return [e for e in ERROR_REGISTRY.values() if e.category == category]


def code_for_kind(kind: str) -> str:
    """Registry code for a failure kind, E-4001 when unknown."""
    return KIND_TO_CODE.get(kind, "E-4001")
