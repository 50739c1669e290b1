"""Error handling framework for the status migrator.

This package provides:
- Typed domain exceptions mapped to exit codes and HTTP statuses
- Error code registry with E-XXXX format codes
- Error formatting and failure grouping utilities

Error categories:
- E-1xxx: Input validation errors
- E-2xxx: Job protocol errors
- E-3xxx: Remote order API errors
- E-4xxx: System/internal errors
"""

from src.errors.domain import (
    DomainError,
    EmptyTargetSet,
    JobCancelled,
    NotFoundError,
    SearchFailed,
    UpdateRejected,
    ValidationError,
)
from src.errors.registry import (
    ERROR_REGISTRY,
    KIND_TO_CODE,
    ErrorCategory,
    ErrorCode,
    code_for_kind,
    get_error,
    get_errors_by_category,
)
from src.errors.formatter import (
    MigratorError,
    format_error,
    format_failure_summary,
    format_job_summary,
    group_failures,
)

__all__ = [
    # Domain exceptions
    "DomainError",
    "ValidationError",
    "NotFoundError",
    "UpdateRejected",
    "EmptyTargetSet",
    "JobCancelled",
    "SearchFailed",
    # Registry
    "ErrorCode",
    "ErrorCategory",
    "ERROR_REGISTRY",
    "KIND_TO_CODE",
    "code_for_kind",
    "get_error",
    "get_errors_by_category",
    # Formatter
    "MigratorError",
    "format_error",
    "group_failures",
    "format_failure_summary",
    "format_job_summary",
]
