"""Job store — where job records live, and the listener that updates them.

The dispatcher only reads the store (``get``). Writes arrive as
transitions on the event bus and are applied by :class:`JobStoreListener`,
so the store stays the single source of truth and the dispatcher never
re-reads-then-writes its own snapshot.

Usage::

    store = InMemoryJobStore()
    listener = JobStoreListener(store)
    await listener.attach(bus)

    store.add(Job(provider="echo"))
"""

from __future__ import annotations

import threading
from typing import Protocol, runtime_checkable

from jobspine.core.errors import JobAccessDeniedError, JobNotFoundError
from jobspine.core.events import Event, EventBus
from jobspine.core.logging import get_logger

from .models import (
    Identity,
    InvalidTransitionError,
    Job,
    JobState,
    StateTransitionEvent,
    utcnow,
    validate_transition,
)

logger = get_logger(__name__)


@runtime_checkable
class JobStore(Protocol):
    """Read side of the job store, as the dispatcher sees it."""

    def get(self, job_id: str, identity: Identity) -> Job:
        """Return the job, or raise a ``StoreError``."""
        ...


class InMemoryJobStore:
    """Thread-safe, process-local job store.

    ``get`` returns a detached copy, so a caller holding a job never sees
    later transitions land on it.
    """

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._lock = threading.Lock()

    def add(self, job: Job) -> Job:
        """Insert or replace a job record."""
        with self._lock:
            self._jobs[job.job_id] = job.copy()
        return job

    def get(self, job_id: str, identity: Identity) -> Job:
        """Fetch a job.

        Raises:
            JobNotFoundError: If the id is unknown
            JobAccessDeniedError: If a non-system identity reads a job it
                does not own
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            if not identity.is_system and job.owner != identity.principal:
                raise JobAccessDeniedError(job_id, identity.principal)
            return job.copy()

    def apply(self, event: StateTransitionEvent) -> bool:
        """Apply one transition.

        Returns:
            True if the record changed; False for unknown jobs or
            transitions the state machine rejects
        """
        with self._lock:
            job = self._jobs.get(event.job_id)
            if job is None:
                logger.warning("transition_for_unknown_job", job_id=event.job_id)
                return False

            if event.state is not None and event.state != job.state:
                try:
                    validate_transition(job.state, event.state)
                except InvalidTransitionError as e:
                    logger.warning("transition_rejected", job_id=event.job_id, error=str(e))
                    return False
                job.state = event.state
                if event.state == JobState.IN_PROGRESS and job.started_at is None:
                    job.started_at = event.timestamp
                if event.state.is_terminal:
                    job.completed_at = event.timestamp

            if event.message is not None:
                job.message = event.message
            job.updated_at = utcnow()
            return True

    def list_jobs(self, state: JobState | None = None) -> list[Job]:
        """Snapshot of all jobs, optionally filtered by state."""
        with self._lock:
            return [
                job.copy() for job in self._jobs.values()
                if state is None or job.state == state
            ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)


class JobStoreListener:
    """Applies ``job.*`` bus events to an :class:`InMemoryJobStore`."""

    def __init__(self, store: InMemoryJobStore):
        self._store = store
        self._subscription_id: str | None = None

    async def attach(self, bus: EventBus) -> str:
        """Subscribe to job transitions on ``bus``."""
        self._subscription_id = await bus.subscribe("job.*", self.handle)
        return self._subscription_id

    async def detach(self, bus: EventBus) -> None:
        if self._subscription_id is not None:
            await bus.unsubscribe(self._subscription_id)
            self._subscription_id = None

    async def handle(self, event: Event) -> None:
        if "job_id" not in event.payload or "state" not in event.payload:
            return
        self._store.apply(StateTransitionEvent.from_dict(event.payload))


__all__ = ["JobStore", "InMemoryJobStore", "JobStoreListener"]
