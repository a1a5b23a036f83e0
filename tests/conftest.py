"""
Shared pytest fixtures for jobspine tests.

This module provides:
- Scripted fake providers (sync and async) that record every call
- Isolated registry, store, notifier and dispatcher fixtures
- Global state cleanup (default registry, cached settings, log context)

Usage:
    Fixtures are auto-discovered by pytest.

    def test_something(dispatcher, registry, add_job):
        registry.register("echo", lambda: ScriptedSyncProvider())
        job = add_job("echo")
        dispatcher.dispatch(job.job_id)
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from jobspine.core.logging import clear_context
from jobspine.core.settings import reset_settings
from jobspine.execution.dispatcher import JobDispatcher
from jobspine.execution.models import Job, ProviderOutcome
from jobspine.execution.notifier import RecordingNotifier
from jobspine.execution.providers import AsynchronousProvider, SynchronousProvider
from jobspine.execution.registry import ProviderRegistry, reset_default_registry
from jobspine.execution.resolver import ProviderResolver
from jobspine.execution.store import InMemoryJobStore


# =============================================================================
# Markers
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests: test_runtime.py is integration, the rest unit."""
    for item in items:
        if Path(str(item.fspath)).name == "test_runtime.py":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Fake providers
# =============================================================================


class ScriptedSyncProvider(SynchronousProvider):
    """Synchronous provider whose answers are fixed up front."""

    name = "Scripted Sync"

    def __init__(
        self,
        *,
        initialize: bool = True,
        available: bool = True,
        result: bool = True,
        raises: Exception | None = None,
        cancelable: bool = True,
    ):
        self._initialize = initialize
        self._available = available
        self._result = result
        self._raises = raises
        self._cancelable = cancelable
        self.calls: list[str] = []

    def initialize(self, job: Job) -> bool:
        self.calls.append("initialize")
        return self._initialize

    def is_available(self, job: Job) -> bool:
        self.calls.append("is_available")
        return self._available

    def is_cancelable(self, job: Job) -> bool:
        self.calls.append("is_cancelable")
        return self._cancelable

    def process(self, job: Job) -> bool:
        self.calls.append("process")
        if self._raises is not None:
            raise self._raises
        return self._result

    def count(self, method: str) -> int:
        return self.calls.count(method)


class ScriptedAsyncProvider(AsynchronousProvider):
    """Asynchronous provider; ``outcome`` is what ``poll`` reports."""

    name = "Scripted Async"

    def __init__(
        self,
        *,
        initialize: bool = True,
        available: bool = True,
        raises: Exception | None = None,
        outcome: ProviderOutcome | None = None,
    ):
        self._initialize = initialize
        self._available = available
        self._raises = raises
        self.outcome = outcome
        self.calls: list[str] = []

    def initialize(self, job: Job) -> bool:
        self.calls.append("initialize")
        return self._initialize

    def is_available(self, job: Job) -> bool:
        self.calls.append("is_available")
        return self._available

    def process(self, job: Job) -> None:
        self.calls.append("process")
        if self._raises is not None:
            raise self._raises

    def poll(self, job: Job) -> ProviderOutcome | None:
        self.calls.append("poll")
        return self.outcome

    def count(self, method: str) -> int:
        return self.calls.count(method)


# =============================================================================
# Global state cleanup
# =============================================================================


@pytest.fixture(autouse=True)
def _isolate_globals():
    """Reset the default registry, cached settings and log context."""
    reset_default_registry()
    reset_settings()
    clear_context()
    yield
    reset_default_registry()
    reset_settings()
    clear_context()


# =============================================================================
# Core fixtures
# =============================================================================


@pytest.fixture
def registry() -> ProviderRegistry:
    return ProviderRegistry()


@pytest.fixture
def store() -> InMemoryJobStore:
    return InMemoryJobStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def resolver(registry: ProviderRegistry) -> ProviderResolver:
    return ProviderResolver(registry)


@pytest.fixture
def dispatcher(
    store: InMemoryJobStore,
    resolver: ProviderResolver,
    notifier: RecordingNotifier,
) -> JobDispatcher:
    return JobDispatcher(store, resolver, notifier)


@pytest.fixture
def add_job(store: InMemoryJobStore) -> Callable[..., Job]:
    """Factory: add a CREATED job for ``provider`` to the store."""

    def _add(provider: str, **kwargs) -> Job:
        return store.add(Job(provider=provider, **kwargs))

    return _add
