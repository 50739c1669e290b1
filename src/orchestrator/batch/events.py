"""Observer pattern for job lifecycle events.

Provides the JobEventObserver protocol and JobEventEmitter class so a
presentation layer can be notified of phase changes and per-order update
results instead of polling.
"""

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class JobEventObserver(Protocol):
    """Observer protocol for job lifecycle events.

    Implementations can subscribe via JobEventEmitter to update a UI,
    stream progress, or log activity.
    """

    async def on_phase_changed(self, job_id: str, old_phase: str, new_phase: str) -> None:
        """Called after a job moves to a new phase.

        Args:
            job_id: Unique identifier for the job.
            old_phase: Phase the job left.
            new_phase: Phase the job entered.
        """
        ...

    async def on_item_succeeded(self, job_id: str, order_id: str) -> None:
        """Called when the remote accepted the status change for an order.

        Args:
            job_id: Unique identifier for the job.
            order_id: Remote order identifier.
        """
        ...

    async def on_item_failed(
        self,
        job_id: str,
        order_id: str,
        kind: str,
        message: str,
    ) -> None:
        """Called when an order could not be updated.

        Args:
            job_id: Unique identifier for the job.
            order_id: Remote order identifier.
            kind: Failure kind (RateLimited, ValidationFailed, ...).
            message: Human-readable error description.
        """
        ...


class JobEventEmitter:
    """Emits job lifecycle events to registered observers.

    Exceptions from individual observers are caught and logged so one
    broken observer cannot stop delivery to the others or fail the job.
    """

    def __init__(self) -> None:
        """Initialize emitter with empty observer list."""
        self._observers: list[JobEventObserver] = []

    def add_observer(self, observer: JobEventObserver) -> None:
        """Register an observer to receive job events."""
        self._observers.append(observer)

    def remove_observer(self, observer: JobEventObserver) -> None:
        """Unregister an observer."""
        self._observers.remove(observer)

    async def emit_phase_changed(self, job_id: str, old_phase: str, new_phase: str) -> None:
        """Emit phase changed event to all observers."""
        for observer in self._observers:
            try:
                await observer.on_phase_changed(job_id, old_phase, new_phase)
            except Exception as e:
                logger.error(
                    "Observer %s failed on_phase_changed: %s",
                    type(observer).__name__,
                    e,
                )

    async def emit_item_succeeded(self, job_id: str, order_id: str) -> None:
        """Emit item succeeded event to all observers."""
        for observer in self._observers:
            try:
                await observer.on_item_succeeded(job_id, order_id)
            except Exception as e:
                logger.error(
                    "Observer %s failed on_item_succeeded: %s",
                    type(observer).__name__,
                    e,
                )

    async def emit_item_failed(
        self,
        job_id: str,
        order_id: str,
        kind: str,
        message: str,
    ) -> None:
        """Emit item failed event to all observers."""
        for observer in self._observers:
            try:
                await observer.on_item_failed(job_id, order_id, kind, message)
            except Exception as e:
                logger.error(
                    "Observer %s failed on_item_failed: %s",
                    type(observer).__name__,
                    e,
                )
