"""Result publishers — deliver a finished job to wherever its results belong.

Manifesto:
Running a job is only half the work; its findings usually need to land
somewhere else (a ticket tracker, a chat channel, a results database).
A job names a publisher the same way it names a provider, and once the
job reaches a terminal state the publisher gets one chance to deliver it.
A publisher that fails is logged and forgotten: the job's own state is
already settled and never changes because of publishing.

ARCHITECTURE
────────────
::

    BasePublisher (ABC)
      ├── .name                ─ human-readable publisher name
      ├── .initialize(job)     ─ per-job setup           (default: True)
      └── .publish(job)        ─ deliver results; bool is the outcome

    PublisherRegistry(ProviderRegistry)   ─ publisher id → factory
    register_publisher(id)                ─ class decorator

    ResultPublisher
      ├── .attach(bus)         ─ subscribe to job.state_changed
      ├── .handle(event)       ─ bus handler
      └── .publish(transition) ─ also usable as a StateNotifier

Flow
────
::

    terminal transition ─► load job (system identity)
                           │  job.publisher is None ─► skip
                           ▼
                        find publisher (case-insensitive id or alias)
                           │  none / several ─► log, skip
                           ▼
                        factory() → initialize(job) → publish(job)

Related modules:
    registry.py  — the registry this one extends
    notifier.py  — STATE_CHANGED and CompositeNotifier

Tags:
    jobspine, execution, publisher, plugin, results
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from dataclasses import replace
from inspect import isabstract

from jobspine.core.errors import MisconfiguredPublisherError
from jobspine.core.events import Event, EventBus
from jobspine.core.logging import LogContext, get_logger

from .models import SYSTEM_IDENTITY, Identity, Job, StateTransitionEvent
from .notifier import STATE_CHANGED
from .registry import ProviderRegistry
from .store import JobStore

logger = get_logger(__name__)


class BasePublisher(ABC):
    """Delivers the results of a finished job.

    Publishers are built with no arguments, once per finished job.
    """

    name: str = ""
    """Human-readable name; falls back to the class name when empty"""

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if not cls.__dict__.get("name"):
            cls.name = cls.__name__

    def initialize(self, job: Job) -> bool:
        """Prepare for ``job``. Return False to skip publishing it."""
        return True

    @abstractmethod
    def publish(self, job: Job) -> bool:
        """Deliver ``job``'s results. True if the delivery succeeded."""


PublisherFactory = Callable[[], BasePublisher]


class PublisherRegistry(ProviderRegistry):
    """Registry of publisher factories.

    Same lookup rules as :class:`ProviderRegistry`; only the validation of
    class factories differs.
    """

    def _validate(self, provider_id: str, factory: PublisherFactory) -> None:
        if not isinstance(factory, type):
            return
        if not issubclass(factory, BasePublisher):
            raise MisconfiguredPublisherError(
                provider_id, f"{factory!r} is not a BasePublisher subclass"
            )
        if isabstract(factory):
            raise MisconfiguredPublisherError(
                provider_id, f"{factory.__name__} does not implement publish()"
            )

    def list_publishers(self) -> list[str]:
        return self.list_providers()


def register_publisher(
    publisher_id: str,
    registry: PublisherRegistry,
    *,
    aliases: Iterable[str] = (),
    description: str | None = None,
):
    """Class decorator registering a publisher into ``registry``.

    Example:
        >>> publishers = PublisherRegistry()
        >>>
        >>> @register_publisher("tickets", publishers)
        ... class TicketPublisher(BasePublisher):
        ...     def publish(self, job):
        ...         return open_ticket(job.job_id, job.message)
    """

    def decorator(cls: type[BasePublisher]) -> type[BasePublisher]:
        registry.register(
            publisher_id,
            cls,
            aliases=aliases,
            description=description or cls.__doc__,
        )
        return cls

    return decorator


class ResultPublisher:
    """Hands terminal jobs to the publisher each job names.

    Attach it to the event bus, or put it inside a
    :class:`~jobspine.execution.notifier.CompositeNotifier` next to the
    dispatcher's notifier. Either way it never raises.

    The store may not have applied the terminal transition yet when the
    publisher runs, so the transition's state and message are laid over the
    stored job before it is handed on.
    """

    def __init__(
        self,
        store: JobStore,
        registry: PublisherRegistry,
        *,
        identity: Identity = SYSTEM_IDENTITY,
    ):
        self._store = store
        self._registry = registry
        self._identity = identity
        self._subscription_id: str | None = None

    @property
    def registry(self) -> PublisherRegistry:
        return self._registry

    async def attach(self, bus: EventBus) -> str:
        """Subscribe to state changes on ``bus``."""
        self._subscription_id = await bus.subscribe(STATE_CHANGED, self.handle)
        return self._subscription_id

    async def detach(self, bus: EventBus) -> None:
        if self._subscription_id is not None:
            await bus.unsubscribe(self._subscription_id)
            self._subscription_id = None

    async def handle(self, event: Event) -> None:
        if "job_id" not in event.payload or "state" not in event.payload:
            return
        self.publish(StateTransitionEvent.from_dict(event.payload))

    def publish(self, event: StateTransitionEvent) -> bool:
        """Publish the job behind a terminal transition.

        Returns:
            True if a publisher accepted the job
        """
        if not event.is_terminal:
            return False

        with LogContext(job_id=event.job_id):
            try:
                return self._publish(event)
            except Exception as e:
                logger.error(
                    "publisher_failed",
                    error_type=type(e).__name__,
                    error=str(e),
                    exc_info=e,
                )
                return False

    def _publish(self, event: StateTransitionEvent) -> bool:
        job = self._store.get(event.job_id, self._identity)
        if not job.publisher:
            return False
        if event.message is not None:
            job = replace(job, state=event.state, message=event.message)
        else:
            job = replace(job, state=event.state)

        matches = self._registry.find(job.publisher)
        if len(matches) != 1:
            logger.warning(
                "publisher_not_found" if not matches else "publisher_ambiguous",
                publisher=job.publisher,
                candidates=sorted(m.provider_id for m in matches),
            )
            return False

        entry = matches[0]
        publisher = entry.factory()
        if not publisher.initialize(job):
            logger.warning("publisher_initialize_failed", publisher=entry.provider_id)
            return False

        published = bool(publisher.publish(job))
        if published:
            logger.info("job_published", publisher=entry.provider_id, state=job.state.value)
        else:
            logger.warning("publisher_rejected", publisher=entry.provider_id, state=job.state.value)
        return published


__all__ = [
    "BasePublisher",
    "PublisherFactory",
    "PublisherRegistry",
    "register_publisher",
    "ResultPublisher",
]
