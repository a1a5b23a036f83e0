"""
Thread-safe in-process event bus.

Job transitions are published from dispatch worker threads, each driving
its own short event loop, while the runtime subscribes from the main loop.
Every read and write of the subscription table therefore goes through one
``threading.Lock``. An ``asyncio.Lock`` would bind to whichever loop
touched it first.

Delivery is a snapshot: handlers matching when ``publish`` takes the lock
are awaited concurrently after it is released, so a handler may subscribe
or unsubscribe without deadlocking. Nothing is persisted or replayed.

Tags:
    jobspine, events, in-memory, asyncio, threading, single-node
"""

from __future__ import annotations

import asyncio
import threading
import uuid
from dataclasses import dataclass

from jobspine.core.events import Event, EventHandler
from jobspine.core.logging import get_logger

__all__ = ["InMemoryEventBus"]

log = get_logger("jobspine.events")


@dataclass(frozen=True)
class _Subscription:
    sub_id: str
    pattern: str
    handler: EventHandler


class InMemoryEventBus:
    """Event bus shared by the runtime, the dispatcher and listeners.

    Example::

        bus = InMemoryEventBus()

        async def on_transition(event: Event):
            print(event.payload["job_id"], event.payload["state"])

        await bus.subscribe("job.state_changed", on_transition)
        await bus.publish(Event(
            event_type="job.state_changed",
            source="jobspine.dispatcher",
            payload={"job_id": "job-1", "state": "COMPLETED"},
        ))
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, _Subscription] = {}
        self._lock = threading.Lock()
        self._closed = False

    def _matching(self, event: Event) -> list[_Subscription]:
        with self._lock:
            if self._closed:
                return []
            return [s for s in self._subscriptions.values() if event.matches(s.pattern)]

    async def _deliver(self, sub: _Subscription, event: Event) -> None:
        try:
            await sub.handler(event)
        except Exception as e:
            log.warning(
                "event_handler_error",
                subscription_id=sub.sub_id,
                pattern=sub.pattern,
                event_type=event.event_type,
                error=str(e),
            )

    async def publish(self, event: Event) -> None:
        """Deliver ``event`` to every subscription whose pattern matches.

        A failing handler is logged and does not affect the others. Publishing
        to a closed bus is a no-op.
        """
        targets = self._matching(event)
        if targets:
            await asyncio.gather(*(self._deliver(sub, event) for sub in targets))

    async def subscribe(self, event_type: str, handler: EventHandler) -> str:
        """Register ``handler`` for events matching ``event_type``.

        ``event_type`` is an exact type, a ``prefix.*`` wildcard or ``*``.

        Returns:
            Subscription ID for ``unsubscribe``
        """
        sub = _Subscription(sub_id=f"sub_{uuid.uuid4().hex[:12]}", pattern=event_type, handler=handler)
        with self._lock:
            self._subscriptions[sub.sub_id] = sub
        log.debug("event_subscribed", subscription_id=sub.sub_id, pattern=event_type)
        return sub.sub_id

    async def unsubscribe(self, subscription_id: str) -> None:
        """Drop a subscription. Unknown ids are ignored."""
        with self._lock:
            self._subscriptions.pop(subscription_id, None)

    async def close(self) -> None:
        """Stop delivery and drop every subscription."""
        with self._lock:
            self._closed = True
            self._subscriptions.clear()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscription_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)
