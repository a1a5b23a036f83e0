"""State notifiers — how the dispatcher announces job transitions.

The dispatcher only knows :class:`StateNotifier`: hand it a
:class:`StateTransitionEvent` and move on. Delivery is fire-and-forget;
a notifier logs and swallows its own transport errors so they never reach
the dispatcher's control flow.

ARCHITECTURE
────────────
::

    StateNotifier (Protocol)
      └── .publish(event) -> None

    Implementations:
      EventBusNotifier   ─ wraps the transition in a core Event on an EventBus
      RecordingNotifier  ─ keeps events in memory (tests, inspection)
      CompositeNotifier  ─ fans out to several notifiers

Event types on the bus:
    ``job.state_changed``  ─ state set (payload: StateTransitionEvent.to_dict())
    ``job.message``        ─ message-only update, state unchanged
"""

from __future__ import annotations

import asyncio
import threading
from typing import Protocol, runtime_checkable

from jobspine.core.events import Event, EventBus
from jobspine.core.logging import get_logger

from .models import StateTransitionEvent

logger = get_logger(__name__)

STATE_CHANGED = "job.state_changed"
MESSAGE = "job.message"


@runtime_checkable
class StateNotifier(Protocol):
    """Accepts job transitions for delivery."""

    def publish(self, event: StateTransitionEvent) -> None:
        """Deliver ``event``. Must not raise."""
        ...


def to_bus_event(event: StateTransitionEvent, source: str) -> Event:
    """Wrap a transition in a core :class:`Event`."""
    return Event(
        event_type=MESSAGE if event.is_informational else STATE_CHANGED,
        source=source,
        payload=event.to_dict(),
        timestamp=event.timestamp,
        correlation_id=event.job_id,
    )


class EventBusNotifier:
    """Publishes transitions on an :class:`EventBus`.

    Dispatch threads have no running event loop, so the publish coroutine
    is driven to completion on a fresh loop in the calling thread. Called
    from inside a running loop, the publish is scheduled as a task instead.
    """

    def __init__(self, bus: EventBus, source: str = "jobspine.dispatcher"):
        self._bus = bus
        self._source = source
        self._pending: set[asyncio.Task] = set()

    @property
    def bus(self) -> EventBus:
        return self._bus

    def publish(self, event: StateTransitionEvent) -> None:
        bus_event = to_bus_event(event, self._source)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        try:
            if loop is None:
                asyncio.run(self._bus.publish(bus_event))
            else:
                task = loop.create_task(self._bus.publish(bus_event))
                self._pending.add(task)
                task.add_done_callback(self._task_done)
        except Exception as e:
            logger.error(
                "notifier_publish_failed",
                job_id=event.job_id,
                state=event.state.value if event.state else None,
                error=str(e),
            )

    def _task_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("notifier_publish_failed", error=str(task.exception()))


class RecordingNotifier:
    """Keeps every published transition in memory, in order.

    Example:
        >>> notifier = RecordingNotifier()
        >>> dispatcher = JobDispatcher(store, resolver, notifier)
        >>> dispatcher.dispatch(job.job_id)
        >>> [e.state for e in notifier.for_job(job.job_id)]
        [None, <JobState.IN_PROGRESS: 'in_progress'>, <JobState.COMPLETED: 'completed'>]
    """

    def __init__(self) -> None:
        self._events: list[StateTransitionEvent] = []
        self._lock = threading.Lock()

    def publish(self, event: StateTransitionEvent) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> list[StateTransitionEvent]:
        with self._lock:
            return list(self._events)

    def for_job(self, job_id: str) -> list[StateTransitionEvent]:
        with self._lock:
            return [e for e in self._events if e.job_id == job_id]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


class CompositeNotifier:
    """Delivers each transition to several notifiers in turn."""

    def __init__(self, *notifiers: StateNotifier):
        self._notifiers = list(notifiers)

    def publish(self, event: StateTransitionEvent) -> None:
        for notifier in self._notifiers:
            try:
                notifier.publish(event)
            except Exception as e:
                logger.error(
                    "notifier_publish_failed",
                    notifier=type(notifier).__name__,
                    job_id=event.job_id,
                    error=str(e),
                )


__all__ = [
    "STATE_CHANGED",
    "MESSAGE",
    "StateNotifier",
    "to_bus_event",
    "EventBusNotifier",
    "RecordingNotifier",
    "CompositeNotifier",
]
