"""Pydantic schemas for API request/response validation.

This module defines the data contracts for the status migrator REST API.
The CLI reuses JobResponse for its --json output.
"""

from pydantic import BaseModel, Field

from src.orchestrator.job import Job


# Job schemas


class SearchRequest(BaseModel):
    """Request schema for starting a search job."""

    from_status: str = Field(..., min_length=1, description="Financial status to search for")
    item_cap: int | None = Field(None, description="Maximum orders to collect")


class UpdateRequest(BaseModel):
    """Request schema for starting the update phase of a job."""

    to_status: str = Field(..., min_length=1, description="Financial status to set")
    concurrency: int | None = Field(None, description="Maximum simultaneous updates")


class OrderRowResponse(BaseModel):
    """Display fields for one matched order."""

    id: str
    name: str
    created_at: str
    customer: str
    email: str | None
    total: str
    financial_status: str | None
    financial_status_label: str
    fulfillment_status: str | None


class FailureResponse(BaseModel):
    """Why one order could not be updated."""

    order_id: str
    kind: str
    message: str
    attempts: int


class ErrorResponse(BaseModel):
    """Job-level error detail."""

    error_code: str
    message: str


class JobResponse(BaseModel):
    """Response schema for a job snapshot."""

    id: str
    phase: str
    from_status: str
    to_status: str | None
    item_cap: int
    item_count: int
    has_more: bool
    succeeded_count: int
    failed_count: int
    summary: str
    superseded: bool
    cancel_requested: bool
    created_at: str
    updated_at: str
    orders: list[OrderRowResponse] = []
    failures: list[FailureResponse] = []
    error: ErrorResponse | None = None

    @classmethod
    def from_job(cls, job: Job, include_orders: bool = True) -> "JobResponse":
        """Build a response snapshot from a live Job."""
        failures = []
        if job.outcome is not None:
            failures = [
                FailureResponse(
                    order_id=order_id,
                    kind=failure.kind,
                    message=failure.message,
                    attempts=failure.attempts,
                )
                for order_id, failure in job.outcome.failed.items()
            ]
        error = None
        if job.error is not None:
            error = ErrorResponse(error_code=job.error.code, message=job.error.message)
        return cls(
            id=job.id,
            phase=job.phase.value,
            from_status=job.from_status.value,
            to_status=job.to_status.value if job.to_status else None,
            item_cap=job.item_cap,
            item_count=job.item_count,
            has_more=job.has_more,
            succeeded_count=job.succeeded_count,
            failed_count=job.failed_count,
            summary=job.summary,
            superseded=job.superseded,
            cancel_requested=job.cancel_requested,
            created_at=job.created_at,
            updated_at=job.updated_at,
            orders=[OrderRowResponse(**row) for row in job.display_rows()] if include_orders else [],
            failures=failures,
            error=error,
        )


class HealthResponse(BaseModel):
    """Health check payload."""

    status: str
    version: str
    uptime_seconds: int
    platform: str | None
    current_job_id: str | None
    current_job_phase: str | None
