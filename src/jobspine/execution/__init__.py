"""Job dispatch: providers, resolution, dispatch, notification, store.

ARCHITECTURE
────────────
::

    providers.py   ─ BaseProvider / SynchronousProvider / AsynchronousProvider
    registry.py    ─ provider id → factory
    resolver.py    ─ job → ResolvedProvider (mode-tagged)
    dispatcher.py  ─ JobDispatcher: one attempt, error containment, async hook
    notifier.py    ─ StateNotifier and implementations
    store.py       ─ JobStore, InMemoryJobStore, JobStoreListener
    worker.py      ─ DispatchWorker thread pool, job.process requests
    poller.py      ─ AsyncOutcomePoller
    publishers.py  ─ BasePublisher, PublisherRegistry, ResultPublisher
    runtime.py     ─ create_runtime() wiring
"""

from .dispatcher import JobDispatcher
from .models import (
    SYSTEM_IDENTITY,
    DispatchOutcome,
    DispatchReport,
    Identity,
    InvalidTransitionError,
    Job,
    JobState,
    ProviderOutcome,
    StateTransitionEvent,
    validate_transition,
)
from .notifier import CompositeNotifier, EventBusNotifier, RecordingNotifier, StateNotifier
from .poller import AsyncOutcomePoller
from .providers import AsynchronousProvider, BaseProvider, ExecutionMode, SynchronousProvider
from .publishers import BasePublisher, PublisherRegistry, ResultPublisher, register_publisher
from .registry import (
    ProviderRegistry,
    get_default_registry,
    register_provider,
    reset_default_registry,
)
from .resolver import ProviderDescriptor, ProviderResolver, ResolvedProvider
from .runtime import DispatchRuntime, create_runtime
from .store import InMemoryJobStore, JobStore, JobStoreListener
from .worker import DispatchWorker, request_dispatch

__all__ = [
    "JobDispatcher",
    "SYSTEM_IDENTITY",
    "DispatchOutcome",
    "DispatchReport",
    "Identity",
    "InvalidTransitionError",
    "Job",
    "JobState",
    "ProviderOutcome",
    "StateTransitionEvent",
    "validate_transition",
    "CompositeNotifier",
    "EventBusNotifier",
    "RecordingNotifier",
    "StateNotifier",
    "AsyncOutcomePoller",
    "BasePublisher",
    "PublisherRegistry",
    "ResultPublisher",
    "register_publisher",
    "AsynchronousProvider",
    "BaseProvider",
    "ExecutionMode",
    "SynchronousProvider",
    "ProviderRegistry",
    "get_default_registry",
    "register_provider",
    "reset_default_registry",
    "ProviderDescriptor",
    "ProviderResolver",
    "ResolvedProvider",
    "DispatchRuntime",
    "create_runtime",
    "InMemoryJobStore",
    "JobStore",
    "JobStoreListener",
    "DispatchWorker",
    "request_dispatch",
]
