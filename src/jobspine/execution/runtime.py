"""Runtime wiring — builds a ready-to-use dispatch stack from settings.

Usage::

    registry = ProviderRegistry()
    registry.register("echo", EchoProvider)

    async with create_runtime(registry) as runtime:
        runtime.store.add(Job(provider="echo", job_id="j-1"))
        await request_dispatch(runtime.bus, "j-1")
"""

from __future__ import annotations

from dataclasses import dataclass

from jobspine.core.events import EventBus
from jobspine.core.events.memory import InMemoryEventBus
from jobspine.core.logging import configure_logging, get_logger
from jobspine.core.settings import JobSpineSettings, get_settings

from .dispatcher import JobDispatcher
from .models import Identity
from .notifier import EventBusNotifier
from .poller import AsyncOutcomePoller
from .publishers import PublisherRegistry, ResultPublisher
from .registry import ProviderRegistry, get_default_registry
from .resolver import ProviderResolver
from .store import InMemoryJobStore, JobStoreListener
from .worker import DispatchWorker

logger = get_logger(__name__)


@dataclass
class DispatchRuntime:
    """All the parts of a running dispatch stack."""

    settings: JobSpineSettings
    bus: EventBus
    store: InMemoryJobStore
    listener: JobStoreListener
    resolver: ProviderResolver
    dispatcher: JobDispatcher
    worker: DispatchWorker
    poller: AsyncOutcomePoller
    result_publisher: ResultPublisher | None = None
    started: bool = False

    async def start(self) -> None:
        """Attach the listeners and worker to the bus; start polling."""
        if self.started:
            return
        await self.listener.attach(self.bus)
        if self.result_publisher is not None:
            await self.result_publisher.attach(self.bus)
        await self.worker.attach(self.bus)
        self.poller.start()
        self.started = True
        logger.info(
            "runtime_started",
            max_workers=self.worker.max_workers,
            providers=self.resolver.registry.list_providers(),
        )

    async def close(self) -> None:
        """Detach from the bus, stop polling and drain the worker pool."""
        if not self.started:
            self.worker.shutdown(wait=True)
            return
        await self.worker.detach(self.bus)
        self.poller.stop()
        self.worker.shutdown(wait=True)
        if self.result_publisher is not None:
            await self.result_publisher.detach(self.bus)
        await self.listener.detach(self.bus)
        self.started = False
        logger.info("runtime_stopped")

    async def __aenter__(self) -> DispatchRuntime:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def create_runtime(
    registry: ProviderRegistry | None = None,
    settings: JobSpineSettings | None = None,
    *,
    bus: EventBus | None = None,
    store: InMemoryJobStore | None = None,
    publishers: PublisherRegistry | None = None,
    configure_logs: bool = False,
) -> DispatchRuntime:
    """Build a :class:`DispatchRuntime`.

    Args:
        registry: Provider registry (defaults to the global one)
        settings: Settings (defaults to :func:`get_settings`)
        bus: Event bus (defaults to a new :class:`InMemoryEventBus`)
        store: Job store (defaults to a new :class:`InMemoryJobStore`)
        publishers: Publisher registry; terminal jobs naming a publisher are
            handed to it. Without one nothing is published
        configure_logs: Also call :func:`configure_logging` from settings

    Raises:
        MisconfiguredProviderError: If ``settings.validate_registry`` is on
            and a registered provider breaks the contract
    """
    settings = settings or get_settings()
    if configure_logs:
        configure_logging(
            level=settings.log_level,
            json_format=settings.log_json,
            service=settings.service_name,
        )

    registry = registry if registry is not None else get_default_registry()
    resolver = ProviderResolver(registry)
    if settings.validate_registry:
        resolver.validate_all()

    bus = bus if bus is not None else InMemoryEventBus()
    store = store if store is not None else InMemoryJobStore()
    dispatcher = JobDispatcher(
        store,
        resolver,
        EventBusNotifier(bus),
        identity=Identity(principal=settings.system_principal, is_system=True),
    )
    poller = AsyncOutcomePoller(dispatcher, interval=settings.poll_interval)
    dispatcher.set_async_launch_callback(poller.track)

    return DispatchRuntime(
        settings=settings,
        bus=bus,
        store=store,
        listener=JobStoreListener(store),
        resolver=resolver,
        dispatcher=dispatcher,
        worker=DispatchWorker(dispatcher, max_workers=settings.max_workers),
        poller=poller,
        result_publisher=(
            ResultPublisher(store, publishers, identity=dispatcher.identity)
            if publishers is not None
            else None
        ),
    )


__all__ = ["DispatchRuntime", "create_runtime"]
