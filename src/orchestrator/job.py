"""Job orchestrator: search, confirm, update as an explicit state machine.

A Job holds at most one SearchResult and at most one MutationOutcome and
is tagged with a single phase. Phase changes go through VALID_TRANSITIONS,
so impossible combinations (updating while searching) cannot be
represented.

Lifecycle: idle -> searching -> searched | failed
           searched -> updating -> updated | failed
           searched -> failed (cancelled before update)

Example:
    orchestrator = JobOrchestrator(client)
    job = await orchestrator.start_search("pending")
    await orchestrator.wait(job)
    if job.phase is JobPhase.searched and job.item_count:
        await orchestrator.start_update(job, "paid")
        await orchestrator.wait(job)
    print(job.summary)
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from src.clients.base import OrderAPIClient
from src.clients.models import FinancialStatus, status_label
from src.errors.domain import (
    DomainError,
    EmptyTargetSet,
    JobCancelled,
    NotFoundError,
    SearchFailed,
    UpdateRejected,
    ValidationError,
)
from src.errors.formatter import format_job_summary
from src.orchestrator.batch.events import JobEventEmitter
from src.orchestrator.batch.models import MutationOutcome, SearchResult
from src.orchestrator.batch.mutator import DEFAULT_CONCURRENCY, BatchMutator
from src.orchestrator.batch.paginator import DEFAULT_ITEM_CAP, DEFAULT_PAGE_SIZE, OrderPaginator
from src.orchestrator.batch.retry import RetryPolicy, Sleep
from src.utils.formatting import format_created_at, format_money

logger = logging.getLogger(__name__)


class JobPhase(str, Enum):
    """Phase of a status-migration job."""

    idle = "idle"
    searching = "searching"
    searched = "searched"
    updating = "updating"
    updated = "updated"
    failed = "failed"


class InvalidStateTransition(Exception):
    """Raised when attempting an invalid job phase transition.

    Attributes:
        current_state: The current phase of the job.
        attempted_state: The phase that was attempted.
        allowed_transitions: Valid transition targets from current phase.
    """

    def __init__(
        self,
        current_state: JobPhase,
        attempted_state: JobPhase,
        allowed_transitions: list[JobPhase],
    ) -> None:
        self.current_state = current_state
        self.attempted_state = attempted_state
        self.allowed_transitions = allowed_transitions
        allowed_str = ", ".join(s.value for s in allowed_transitions) or "none (terminal)"
        super().__init__(
            f"Cannot transition from '{current_state.value}' to '{attempted_state.value}'. "
            f"Allowed transitions: {allowed_str}"
        )


# Valid phase transitions for the job lifecycle
VALID_TRANSITIONS: dict[JobPhase, list[JobPhase]] = {
    JobPhase.idle: [JobPhase.searching],
    JobPhase.searching: [JobPhase.searched, JobPhase.failed],
    JobPhase.searched: [JobPhase.updating, JobPhase.failed],
    JobPhase.updating: [JobPhase.updated, JobPhase.failed],
    JobPhase.updated: [],  # terminal
    JobPhase.failed: [],  # terminal (a new search creates a new job)
}

TERMINAL_PHASES = frozenset({JobPhase.updated, JobPhase.failed})


def _utc_now_iso() -> str:
    """Generate current UTC timestamp in ISO8601 format."""
    return datetime.now(timezone.utc).isoformat()


@dataclass(eq=False)
class Job:
    """One search -> update unit of work.

    Created per search and never reused: a newer search marks it superseded.
    """

    from_status: FinancialStatus
    item_cap: int
    id: str = field(default_factory=lambda: str(uuid4()))
    phase: JobPhase = JobPhase.idle
    to_status: FinancialStatus | None = None
    search_result: SearchResult | None = None
    outcome: MutationOutcome | None = None
    error: DomainError | None = None
    superseded: bool = False
    created_at: str = field(default_factory=_utc_now_iso)
    updated_at: str = field(default_factory=_utc_now_iso)
    _cancel_event: asyncio.Event = field(default_factory=asyncio.Event, repr=False)
    _task: "asyncio.Task[None] | None" = field(default=None, repr=False)

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_event.is_set()

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def item_count(self) -> int:
        return self.search_result.count if self.search_result else 0

    @property
    def has_more(self) -> bool:
        return bool(self.search_result and self.search_result.has_more)

    @property
    def succeeded_count(self) -> int:
        return self.outcome.succeeded_count if self.outcome else 0

    @property
    def failed_count(self) -> int:
        return self.outcome.failed_count if self.outcome else 0

    @property
    def failure_reasons(self) -> dict[str, str]:
        """Failed order id -> 'Kind: message'."""
        if not self.outcome:
            return {}
        return {
            order_id: f"{failure.kind}: {failure.message}"
            for order_id, failure in self.outcome.failed.items()
        }

    @property
    def summary(self) -> str:
        """One-line report of where the job stands."""
        return format_job_summary(self)

    def display_rows(self) -> list[dict[str, Any]]:
        """Read-only per-order fields for presentation."""
        if not self.search_result:
            return []
        return [
            {
                "id": order.id,
                "name": order.name,
                "created_at": format_created_at(order.created_at),
                "customer": order.customer_name or "Guest",
                "email": order.customer_email,
                "total": format_money(order.total),
                "financial_status": order.status_value,
                "financial_status_label": status_label(order.status_value),
                "fulfillment_status": order.fulfillment_status,
            }
            for order in self.search_result.items
        ]


class JobOrchestrator:
    """Sequences search and update phases for status-migration jobs.

    All methods must be called from within a running event loop. At most
    one update phase can be in flight per job: start_update moves the job
    to 'updating' before yielding, so a second request sees the new phase
    and is rejected.
    """

    def __init__(
        self,
        client: OrderAPIClient,
        page_size: int = DEFAULT_PAGE_SIZE,
        item_cap: int = DEFAULT_ITEM_CAP,
        concurrency: int = DEFAULT_CONCURRENCY,
        retry_policy: RetryPolicy | None = None,
        emitter: JobEventEmitter | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize orchestrator.

        Args:
            client: Remote order API client shared by both phases
            page_size: Orders requested per page during search
            item_cap: Default maximum orders per search
            concurrency: Default fan-out width for updates
            retry_policy: Retry policy shared by page fetches and mutations
            emitter: Event emitter for phase/item notifications
            sleep: Injected sleep used between retries
        """
        if item_cap < 1:
            raise ValidationError(f"item_cap must be >= 1, got {item_cap}")
        retry = retry_policy or RetryPolicy()
        self._paginator = OrderPaginator(client, page_size=page_size, retry_policy=retry, sleep=sleep)
        self._mutator = BatchMutator(client, concurrency=concurrency, retry_policy=retry, sleep=sleep)
        self._item_cap = item_cap
        self._emitter = emitter or JobEventEmitter()
        self._jobs: dict[str, Job] = {}
        self._current: Job | None = None

    @property
    def emitter(self) -> JobEventEmitter:
        return self._emitter

    @property
    def current_job(self) -> Job | None:
        """The job created by the most recent search, if any."""
        return self._current

    def get_job(self, job_id: str) -> Job:
        """Look up a job by id.

        Raises:
            NotFoundError: Unknown or discarded job id.
        """
        job = self._jobs.get(job_id)
        if job is None:
            raise NotFoundError("Job", job_id)
        return job

    def _set_phase(self, job: Job, new_phase: JobPhase) -> JobPhase:
        """Move a job to ``new_phase`` synchronously.

        Returns:
            The phase the job left.

        Raises:
            InvalidStateTransition: If the transition is not allowed.
        """
        current = job.phase
        allowed = VALID_TRANSITIONS.get(current, [])
        if new_phase not in allowed:
            raise InvalidStateTransition(current, new_phase, allowed)
        job.phase = new_phase
        job.updated_at = _utc_now_iso()
        logger.info("Job %s: %s -> %s", job.id, current.value, new_phase.value)
        return current

    async def _advance(self, job: Job, new_phase: JobPhase) -> None:
        old = self._set_phase(job, new_phase)
        await self._emitter.emit_phase_changed(job.id, old.value, new_phase.value)

    def _supersede_current(self) -> None:
        """Retire the previous job when a new search begins."""
        previous = self._current
        if previous is None:
            return
        previous.superseded = True
        if previous.phase is JobPhase.searching:
            previous._cancel_event.set()
        # Drop retired jobs that have nothing left to report
        for job_id, job in list(self._jobs.items()):
            if job.superseded and not job.is_running:
                del self._jobs[job_id]

    async def start_search(
        self,
        from_status: FinancialStatus | str,
        item_cap: int | None = None,
    ) -> Job:
        """Begin a search for orders in ``from_status``.

        Returns as soon as the search is scheduled; the job is 'searching'.

        Args:
            from_status: Financial status to search for.
            item_cap: Override for the maximum number of orders.

        Returns:
            The new Job.

        Raises:
            ValidationError: Invalid status or cap (no job is created).
        """
        status = FinancialStatus.parse(from_status)
        cap = self._item_cap if item_cap is None else item_cap
        if cap < 1:
            raise ValidationError(f"item_cap must be >= 1, got {cap}")

        self._supersede_current()
        job = Job(from_status=status, item_cap=cap)
        self._jobs[job.id] = job
        self._current = job

        old = self._set_phase(job, JobPhase.searching)
        job._task = asyncio.get_running_loop().create_task(self._run_search(job, old))
        return job

    async def _run_search(self, job: Job, old_phase: JobPhase) -> None:
        await self._emitter.emit_phase_changed(job.id, old_phase.value, job.phase.value)
        try:
            result = await self._paginator.search(
                job.from_status, job.item_cap, cancel_event=job._cancel_event,
            )
        except (SearchFailed, JobCancelled) as e:
            logger.error("Job %s search aborted: %s", job.id, e)
            job.error = e
            await self._advance(job, JobPhase.failed)
            return
        except Exception as e:
            logger.exception("Job %s search raised unexpectedly", job.id)
            job.error = DomainError(f"Unexpected search error: {type(e).__name__}: {e}")
            await self._advance(job, JobPhase.failed)
            return

        if job.cancel_requested:
            job.error = JobCancelled(JobPhase.searching.value)
            await self._advance(job, JobPhase.failed)
            return

        job.search_result = result
        await self._advance(job, JobPhase.searched)

    async def start_update(
        self,
        job: Job,
        to_status: FinancialStatus | str,
        concurrency: int | None = None,
    ) -> Job:
        """Begin moving every searched order to ``to_status``.

        Args:
            job: A job in the 'searched' phase.
            to_status: Financial status to set.
            concurrency: Override for the fan-out width.

        Returns:
            The same Job, now 'updating'.

        Raises:
            ValidationError: Invalid status or concurrency.
            UpdateRejected: Job not 'searched', superseded, or cancelled.
            EmptyTargetSet: The search matched no orders.
        """
        status = FinancialStatus.parse(to_status)
        if concurrency is not None and concurrency < 1:
            raise ValidationError(f"concurrency must be >= 1, got {concurrency}")
        if job.superseded:
            raise UpdateRejected(f"Job {job.id} was superseded by a newer search")
        if job.phase is not JobPhase.searched:
            raise UpdateRejected(
                f"Cannot update job {job.id} in phase '{job.phase.value}'; "
                f"expected '{JobPhase.searched.value}'"
            )
        if job.cancel_requested:
            raise UpdateRejected(f"Job {job.id} was cancelled")
        if job.item_count == 0:
            raise EmptyTargetSet()

        job.to_status = status
        old = self._set_phase(job, JobPhase.updating)
        job._task = asyncio.get_running_loop().create_task(
            self._run_update(job, old, concurrency)
        )
        return job

    async def _run_update(self, job: Job, old_phase: JobPhase, concurrency: int | None) -> None:
        await self._emitter.emit_phase_changed(job.id, old_phase.value, job.phase.value)

        async def _on_progress(event: str, **kwargs: Any) -> None:
            if event == "item_succeeded":
                await self._emitter.emit_item_succeeded(job.id, kwargs["order_id"])
            elif event == "item_failed":
                await self._emitter.emit_item_failed(
                    job.id, kwargs["order_id"], kwargs["kind"], kwargs["message"],
                )

        try:
            if job.search_result is None or job.to_status is None:
                raise UpdateRejected(f"Job {job.id} has no search result or target status")
            outcome = await self._mutator.apply_status_change(
                job.search_result.items,
                job.to_status,
                concurrency=concurrency,
                cancel_event=job._cancel_event,
                on_progress=_on_progress,
            )
        except Exception as e:
            logger.exception("Job %s update raised unexpectedly", job.id)
            job.error = e if isinstance(e, DomainError) else DomainError(
                f"Unexpected update error: {type(e).__name__}: {e}"
            )
            await self._advance(job, JobPhase.failed)
            return

        job.outcome = outcome
        if outcome.has_failures:
            logger.warning(
                "Job %s: %d of %d orders failed to update",
                job.id, outcome.failed_count, outcome.total,
            )
        await self._advance(job, JobPhase.updated)

    async def cancel(self, job: Job) -> Job:
        """Request cancellation of a job.

        A running phase drains its in-flight calls first; a 'searched' job
        fails immediately; terminal jobs are left unchanged.
        """
        if job.is_terminal:
            return job
        job._cancel_event.set()
        logger.info("Job %s: cancellation requested in phase '%s'", job.id, job.phase.value)
        if job.phase is JobPhase.searched:
            job.error = JobCancelled(JobPhase.searched.value)
            await self._advance(job, JobPhase.failed)
        return job

    async def wait(self, job: Job) -> Job:
        """Wait until the job's running phase finishes."""
        if job._task is not None:
            await job._task
        return job
