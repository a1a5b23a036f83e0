"""
Tests for job models and the JobState transition graph.

Every state pair is checked: legal moves pass, everything else raises
InvalidTransitionError, and terminal states admit nothing.
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from jobspine.execution.models import (
    SYSTEM_IDENTITY,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    DispatchOutcome,
    DispatchReport,
    InvalidTransitionError,
    Job,
    JobState,
    StateTransitionEvent,
    validate_transition,
)


class TestJobStateGraph:
    """Test JobState transitions."""

    def test_every_state_in_graph(self):
        """Every JobState has an entry in VALID_TRANSITIONS."""
        assert set(VALID_TRANSITIONS) == set(JobState)

    @pytest.mark.parametrize("state", sorted(TERMINAL_STATES, key=lambda s: s.value))
    def test_terminal_states_have_no_exits(self, state):
        """Terminal states cannot move anywhere."""
        assert state.is_terminal
        for target in JobState:
            with pytest.raises(InvalidTransitionError):
                validate_transition(state, target)

    @pytest.mark.parametrize(
        "current, target",
        [
            (JobState.CREATED, JobState.IN_PROGRESS),
            (JobState.CREATED, JobState.UNAVAILABLE),
            (JobState.CREATED, JobState.FAILED),
            (JobState.INITIALIZING, JobState.IN_PROGRESS),
            (JobState.IN_PROGRESS, JobState.COMPLETED),
            (JobState.IN_PROGRESS, JobState.FAILED),
        ],
    )
    def test_legal_transitions(self, current, target):
        """Forward moves are accepted."""
        validate_transition(current, target)

    @pytest.mark.parametrize(
        "current, target",
        [
            (JobState.IN_PROGRESS, JobState.CREATED),
            (JobState.IN_PROGRESS, JobState.UNAVAILABLE),
            (JobState.CREATED, JobState.COMPLETED),
            (JobState.CREATED, JobState.CREATED),
        ],
    )
    def test_illegal_transitions(self, current, target):
        """Backward or skipping moves raise."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            validate_transition(current, target)
        assert exc_info.value.current == current.value
        assert exc_info.value.target == target.value

    def test_error_is_value_error(self):
        """InvalidTransitionError subclasses ValueError."""
        assert issubclass(InvalidTransitionError, ValueError)


class TestJob:
    """Test the Job record."""

    def test_defaults(self):
        """A new job is CREATED with a generated id."""
        job = Job(provider="acme")
        assert job.state == JobState.CREATED
        assert job.job_id
        assert job.message is None

    def test_copy_is_detached(self):
        """copy() does not share params."""
        job = Job(provider="acme", params={"target": "a"})
        snapshot = job.copy()
        snapshot.params["target"] = "b"
        snapshot.state = JobState.FAILED
        assert job.params == {"target": "a"}
        assert job.state == JobState.CREATED

    def test_to_dict(self):
        """to_dict serializes state and timestamps."""
        data = Job(provider="acme", job_id="j-1").to_dict()
        assert data["job_id"] == "j-1"
        assert data["state"] == "created"
        assert data["started_at"] is None
        assert data["publisher"] is None


class TestStateTransitionEvent:
    """Test transition events."""

    def test_informational(self):
        """An event without a state is informational."""
        event = StateTransitionEvent(job_id="j-1", message="Initialized Acme")
        assert event.is_informational
        assert not event.is_terminal

    def test_terminal(self):
        """COMPLETED events are terminal."""
        assert StateTransitionEvent(job_id="j-1", state=JobState.COMPLETED).is_terminal

    def test_dict_roundtrip_preserves_fields(self):
        """from_dict(to_dict()) preserves id, state, message and timestamp."""
        ts = datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)
        event = StateTransitionEvent(
            job_id="j-1", state=JobState.FAILED, message="boom", timestamp=ts
        )
        restored = StateTransitionEvent.from_dict(event.to_dict())
        assert restored == event

    def test_from_dict_without_state(self):
        """A null state decodes to None."""
        restored = StateTransitionEvent.from_dict({"job_id": "j-1", "state": None})
        assert restored.state is None


class TestDispatchReport:
    """Test DispatchReport."""

    @pytest.mark.parametrize(
        "outcome, succeeded",
        [
            (DispatchOutcome.COMPLETED, True),
            (DispatchOutcome.LAUNCHED, True),
            (DispatchOutcome.FAILED, False),
            (DispatchOutcome.UNAVAILABLE, False),
        ],
    )
    def test_succeeded(self, outcome, succeeded):
        """Only completed and launched count as success."""
        assert DispatchReport("j-1", outcome).succeeded is succeeded


def test_system_identity_is_elevated():
    """SYSTEM_IDENTITY bypasses ownership checks."""
    assert SYSTEM_IDENTITY.is_system
