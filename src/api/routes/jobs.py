"""FastAPI routes for status-migration jobs.

Provides REST API endpoints to start a search, poll a job, start the
update phase, and cancel. Both long-running phases are scheduled in the
background; clients poll GET /jobs/{job_id} until the phase settles.
"""

from fastapi import APIRouter, Depends, Request

from src.api.schemas import JobResponse, SearchRequest, UpdateRequest
from src.orchestrator.job import JobOrchestrator

router = APIRouter(prefix="/jobs", tags=["jobs"])


def get_orchestrator(request: Request) -> JobOrchestrator:
    """Dependency to get the application's JobOrchestrator."""
    return request.app.state.orchestrator


@router.post("", response_model=JobResponse, status_code=202)
async def start_search(
    body: SearchRequest,
    orchestrator: JobOrchestrator = Depends(get_orchestrator),
) -> JobResponse:
    """Start a search job.

    Any previous job is superseded and can no longer be updated.

    Args:
        body: Financial status to search for and optional cap.
        orchestrator: Orchestrator dependency.

    Returns:
        The new job, in phase 'searching'.

    Raises:
        ValidationError: Unknown status or cap < 1 (400).
    """
    job = await orchestrator.start_search(body.from_status, item_cap=body.item_cap)
    return JobResponse.from_job(job, include_orders=False)


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: str,
    orchestrator: JobOrchestrator = Depends(get_orchestrator),
) -> JobResponse:
    """Get a job snapshot, including matched orders once searched.

    Raises:
        NotFoundError: Unknown or discarded job (404).
    """
    return JobResponse.from_job(orchestrator.get_job(job_id))


@router.post("/{job_id}/update", response_model=JobResponse, status_code=202)
async def start_update(
    job_id: str,
    body: UpdateRequest,
    orchestrator: JobOrchestrator = Depends(get_orchestrator),
) -> JobResponse:
    """Start moving every searched order to ``to_status``.

    Args:
        job_id: The job UUID.
        body: Target status and optional concurrency.
        orchestrator: Orchestrator dependency.

    Returns:
        The job, in phase 'updating'.

    Raises:
        ValidationError: Unknown status or concurrency < 1 (400).
        NotFoundError: Unknown job (404).
        UpdateRejected: Job not 'searched', superseded, or empty (409).
    """
    job = orchestrator.get_job(job_id)
    await orchestrator.start_update(job, body.to_status, concurrency=body.concurrency)
    return JobResponse.from_job(job, include_orders=False)


@router.post("/{job_id}/cancel", response_model=JobResponse)
async def cancel_job(
    job_id: str,
    orchestrator: JobOrchestrator = Depends(get_orchestrator),
) -> JobResponse:
    """Request cancellation; running phases drain in-flight calls first.

    Raises:
        NotFoundError: Unknown job (404).
    """
    job = orchestrator.get_job(job_id)
    await orchestrator.cancel(job)
    return JobResponse.from_job(job, include_orders=False)
