"""Event system for decoupled job notifications.

Why This Package Exists
-----------------------
The dispatcher announces every job-state change, and the job store, the
worker pool and anything else interested react to them. Without a shared
event bus those pieces would import each other directly. The ``EventBus``
protocol decouples producers from consumers; the in-memory backend serves
single-process deployments and the test suite.

Usage::

    from jobspine.core.events import Event
    from jobspine.core.events.memory import InMemoryEventBus

    bus = InMemoryEventBus()

    async def handler(event: Event):
        print(f"Job {event.correlation_id} -> {event.payload['state']}")

    sub_id = await bus.subscribe("job.*", handler)
    await bus.publish(Event(event_type="job.state_changed", source="example"))

Modules
-------
memory      InMemoryEventBus -- single-node, thread-safe subscription table
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol, runtime_checkable

__all__ = [
    "Event",
    "EventBus",
    "EventHandler",
]


# ── Event Model ──────────────────────────────────────────────────────────


@dataclass
class Event:
    """Event payload for cross-component communication.

    Attributes:
        event_type: Dot-separated type (e.g., ``job.state_changed``, ``job.process``)
        source: Origin component
        payload: Event-specific data
        timestamp: When the event occurred (UTC)
        correlation_id: Optional ID linking related events (the job id)
        event_id: Unique event identifier
    """

    event_type: str
    source: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    correlation_id: str | None = None
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def matches(self, pattern: str) -> bool:
        """Check if event type matches a pattern (supports wildcards).

        Examples:
            - ``job.*`` matches ``job.state_changed``, ``job.message``
            - ``*`` matches everything
            - ``job.process`` matches exactly ``job.process``
        """
        if pattern == "*":
            return True
        if pattern.endswith(".*"):
            prefix = pattern[:-2]
            return self.event_type.startswith(prefix + ".")
        return self.event_type == pattern


# ── Type Aliases ─────────────────────────────────────────────────────────

EventHandler = Callable[[Event], Awaitable[None]]


# ── EventBus Protocol ────────────────────────────────────────────────────


@runtime_checkable
class EventBus(Protocol):
    """Protocol for event bus implementations.

    Supports publish/subscribe with wildcard patterns. Implementations
    must be async-compatible.
    """

    async def publish(self, event: Event) -> None:
        """Publish an event to all matching subscribers."""
        ...

    async def subscribe(
        self,
        event_type: str,
        handler: EventHandler,
    ) -> str:
        """Subscribe to events matching a pattern.

        Returns:
            Subscription ID for later unsubscription
        """
        ...

    async def unsubscribe(self, subscription_id: str) -> None:
        """Remove a subscription."""
        ...

    async def close(self) -> None:
        """Clean up resources."""
        ...
