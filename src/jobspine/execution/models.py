"""Job domain models.

Defines the core data structures for job dispatch:
- JobState: lifecycle states and the forward-only transition graph
- Job: the record a dispatch attempt reads
- Identity: who is reading the job store
- StateTransitionEvent: one announced change of a job
- ProviderOutcome: what an asynchronous provider reports when polled
- DispatchReport: what a dispatch attempt returns to its caller
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


class InvalidTransitionError(ValueError):
    """Raised when an illegal state transition is attempted.

    A job only ever moves forward through ``VALID_TRANSITIONS``; this error
    fires when something tries to move it backwards or out of a terminal
    state (e.g. COMPLETED → IN_PROGRESS).
    """

    def __init__(self, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Invalid JobState transition: {current} → {target}")


class JobState(str, Enum):
    """Lifecycle state of a job.

    Valid transition graph::

        CREATED      → INITIALIZING | IN_PROGRESS | UNAVAILABLE | FAILED
        INITIALIZING → IN_PROGRESS | UNAVAILABLE | FAILED
        IN_PROGRESS  → COMPLETED | FAILED
        COMPLETED    → (terminal)
        FAILED       → (terminal)
        UNAVAILABLE  → (terminal)
    """

    CREATED = "created"
    INITIALIZING = "initializing"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    UNAVAILABLE = "unavailable"

    @property
    def is_terminal(self) -> bool:
        """Check if this is a terminal state."""
        return self in TERMINAL_STATES


TERMINAL_STATES: frozenset[JobState] = frozenset({
    JobState.COMPLETED,
    JobState.FAILED,
    JobState.UNAVAILABLE,
})

VALID_TRANSITIONS: dict[JobState, frozenset[JobState]] = {
    JobState.CREATED: frozenset({
        JobState.INITIALIZING,
        JobState.IN_PROGRESS,
        JobState.UNAVAILABLE,
        JobState.FAILED,
    }),
    JobState.INITIALIZING: frozenset({
        JobState.IN_PROGRESS,
        JobState.UNAVAILABLE,
        JobState.FAILED,
    }),
    JobState.IN_PROGRESS: frozenset({
        JobState.COMPLETED,
        JobState.FAILED,
    }),
    JobState.COMPLETED: frozenset(),  # terminal
    JobState.FAILED: frozenset(),  # terminal
    JobState.UNAVAILABLE: frozenset(),  # terminal
}


def validate_transition(current: JobState, target: JobState) -> None:
    """Raise :class:`InvalidTransitionError` if *current → target* is illegal.

    Example:
        >>> validate_transition(JobState.IN_PROGRESS, JobState.COMPLETED)
        >>> validate_transition(JobState.COMPLETED, JobState.IN_PROGRESS)
        InvalidTransitionError: Invalid JobState transition: completed → in_progress
    """
    if target not in VALID_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransitionError(current.value, target.value)


@dataclass(frozen=True)
class Identity:
    """The principal on whose behalf the job store is read."""

    principal: str
    is_system: bool = False


SYSTEM_IDENTITY = Identity(principal="system", is_system=True)


@dataclass
class Job:
    """A unit of work handed to a provider.

    Example:
        >>> job = Job(provider="nmap", params={"target": "10.0.0.1"})
        >>> job.state
        <JobState.CREATED: 'created'>
    """

    provider: str
    """Declared provider identifier"""

    job_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    state: JobState = JobState.CREATED
    message: str | None = None
    owner: str | None = None
    """Principal that submitted the job; non-system readers must match it"""

    params: dict[str, Any] = field(default_factory=dict)
    """Per-job provider parameters, consumed in ``initialize()``"""

    publisher: str | None = None
    """Publisher that receives the job once it reaches a terminal state"""

    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    started_at: datetime | None = None
    completed_at: datetime | None = None

    def copy(self) -> Job:
        """Detached snapshot of this job."""
        return replace(self, params=dict(self.params))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON/logging."""
        return {
            "job_id": self.job_id,
            "provider": self.provider,
            "state": self.state.value,
            "message": self.message,
            "owner": self.owner,
            "params": dict(self.params),
            "publisher": self.publisher,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass(frozen=True)
class StateTransitionEvent:
    """One announced change of a job.

    ``state`` is None for a message-only event: the job's state field is
    left as it is and only its message changes (the "Initialized ..."
    notice emitted after a provider initializes).
    """

    job_id: str
    state: JobState | None = None
    message: str | None = None
    timestamp: datetime = field(default_factory=utcnow)
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def is_informational(self) -> bool:
        return self.state is None

    @property
    def is_terminal(self) -> bool:
        return self.state is not None and self.state.is_terminal

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "job_id": self.job_id,
            "state": self.state.value if self.state else None,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StateTransitionEvent:
        state = data.get("state")
        timestamp = data.get("timestamp")
        return cls(
            job_id=data["job_id"],
            state=JobState(state) if state else None,
            message=data.get("message"),
            timestamp=datetime.fromisoformat(timestamp) if timestamp else utcnow(),
            event_id=data.get("event_id") or str(uuid.uuid4()),
        )


@dataclass(frozen=True)
class ProviderOutcome:
    """Final result reported by an asynchronous provider."""

    success: bool
    message: str | None = None


class DispatchOutcome(str, Enum):
    """How a single dispatch attempt ended."""

    COMPLETED = "completed"
    FAILED = "failed"
    UNAVAILABLE = "unavailable"
    LAUNCHED = "launched"
    """Asynchronous work started; the terminal state arrives later"""


@dataclass(frozen=True)
class DispatchReport:
    """Returned by ``JobDispatcher.dispatch``; never raised."""

    job_id: str
    outcome: DispatchOutcome
    message: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.outcome in (DispatchOutcome.COMPLETED, DispatchOutcome.LAUNCHED)


__all__ = [
    "utcnow",
    "InvalidTransitionError",
    "JobState",
    "TERMINAL_STATES",
    "VALID_TRANSITIONS",
    "validate_transition",
    "Identity",
    "SYSTEM_IDENTITY",
    "Job",
    "StateTransitionEvent",
    "ProviderOutcome",
    "DispatchOutcome",
    "DispatchReport",
]
