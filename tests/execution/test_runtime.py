"""
End-to-end tests for the wired runtime.

Jobs travel the full path: job.process request on the bus, worker pool,
dispatcher, EventBusNotifier, bus, JobStoreListener, store. Async jobs
additionally go through the background poller.
"""

from __future__ import annotations

import asyncio
import time

import pytest

from conftest import ScriptedAsyncProvider, ScriptedSyncProvider
from jobspine.core.errors import MisconfiguredProviderError
from jobspine.core.settings import JobSpineSettings
from jobspine.execution.models import SYSTEM_IDENTITY, DispatchOutcome, Job, JobState, ProviderOutcome
from jobspine.execution.providers import AsynchronousProvider, SynchronousProvider
from jobspine.execution.publishers import BasePublisher, PublisherRegistry
from jobspine.execution.runtime import create_runtime
from jobspine.execution.worker import request_dispatch


class BothModes(SynchronousProvider, AsynchronousProvider):
    def process(self, job: Job):
        return True


def _settings(**overrides) -> JobSpineSettings:
    values = {"max_workers": 2, "poll_interval": 0.01}
    values.update(overrides)
    return JobSpineSettings(_env_file=None, **values)


async def _wait_for_terminal(runtime, job_id: str, timeout: float = 5.0) -> Job:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        job = runtime.store.get(job_id, SYSTEM_IDENTITY)
        if job.state.is_terminal:
            return job
        await asyncio.sleep(0.01)
    raise AssertionError(f"job {job_id} never reached a terminal state")


class TestCreateRuntime:
    """Building the runtime."""

    def test_validates_registry(self, registry):
        """Misconfigured providers fail the build."""
        registry.register("both", BothModes, validate=False)
        with pytest.raises(MisconfiguredProviderError):
            create_runtime(registry, _settings())

    def test_validation_can_be_disabled(self, registry):
        """validate_registry=False defers the check."""
        registry.register("both", BothModes, validate=False)
        runtime = create_runtime(registry, _settings(validate_registry=False))
        runtime.worker.shutdown()

    def test_uses_settings(self, registry):
        """Pool size and principal come from settings."""
        runtime = create_runtime(registry, _settings(max_workers=3, system_principal="dispatcher"))
        try:
            assert runtime.worker.max_workers == 3
            assert runtime.dispatcher.identity.principal == "dispatcher"
            assert runtime.dispatcher.identity.is_system
        finally:
            runtime.worker.shutdown()


class TestEndToEnd:
    """Jobs through the full stack."""

    @pytest.mark.asyncio
    async def test_sync_job_completes(self, registry):
        """A bus request runs a sync job to COMPLETED in the store."""
        registry.register("acme", ScriptedSyncProvider)

        async with create_runtime(registry, _settings()) as runtime:
            job = runtime.store.add(Job(provider="acme"))
            await request_dispatch(runtime.bus, job.job_id)
            stored = await _wait_for_terminal(runtime, job.job_id)

        assert stored.state == JobState.COMPLETED
        assert stored.message == "Initialized Scripted Sync"
        assert stored.started_at is not None

    @pytest.mark.asyncio
    async def test_direct_submit(self, registry):
        """worker.submit() reports and updates the store."""
        registry.register("acme", lambda: ScriptedSyncProvider(raises=OSError("disk full")))

        async with create_runtime(registry, _settings()) as runtime:
            job = runtime.store.add(Job(provider="acme"))
            future = runtime.worker.submit(job.job_id)
            report = await asyncio.to_thread(future.result, 5)

        assert report.outcome == DispatchOutcome.FAILED
        stored = runtime.store.get(job.job_id, SYSTEM_IDENTITY)
        assert (stored.state, stored.message) == (JobState.FAILED, "disk full")

    @pytest.mark.asyncio
    async def test_unknown_provider(self, registry):
        """An unregistered provider fails the job in the store."""
        async with create_runtime(registry, _settings()) as runtime:
            job = runtime.store.add(Job(provider="acme-scanner"))
            await request_dispatch(runtime.bus, job.job_id)
            stored = await _wait_for_terminal(runtime, job.job_id)

        assert stored.state == JobState.FAILED
        assert "acme-scanner" in stored.message

    @pytest.mark.asyncio
    async def test_unavailable(self, registry):
        """Unavailable providers leave the job UNAVAILABLE."""
        provider = ScriptedSyncProvider(available=False)
        registry.register("acme", lambda: provider)

        async with create_runtime(registry, _settings()) as runtime:
            job = runtime.store.add(Job(provider="acme"))
            await request_dispatch(runtime.bus, job.job_id)
            stored = await _wait_for_terminal(runtime, job.job_id)

        assert stored.state == JobState.UNAVAILABLE
        assert provider.count("process") == 0

    @pytest.mark.asyncio
    async def test_async_job_settled_by_poller(self, registry):
        """An async job completes once its provider reports an outcome."""
        provider = ScriptedAsyncProvider()
        registry.register("acme", lambda: provider)

        async with create_runtime(registry, _settings()) as runtime:
            job = runtime.store.add(Job(provider="acme"))
            report = await asyncio.to_thread(runtime.worker.submit(job.job_id).result, 5)
            assert report.outcome == DispatchOutcome.LAUNCHED
            assert runtime.store.get(job.job_id, SYSTEM_IDENTITY).state == JobState.IN_PROGRESS

            provider.outcome = ProviderOutcome(success=True, message="scan finished")
            stored = await _wait_for_terminal(runtime, job.job_id)

        assert stored.state == JobState.COMPLETED
        assert stored.message == "scan finished"
        assert runtime.poller.pending == 0

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, registry):
        """Closing twice is harmless."""
        runtime = create_runtime(registry, _settings())
        await runtime.start()
        await runtime.start()
        await runtime.close()
        await runtime.close()
        assert runtime.started is False


class TestPublishing:
    """Result publishers wired through the runtime."""

    @pytest.mark.asyncio
    async def test_finished_job_is_published(self, registry):
        """A job naming a publisher is handed to it once terminal."""
        published: list[tuple[str, JobState]] = []

        class TicketPublisher(BasePublisher):
            def publish(self, job: Job) -> bool:
                published.append((job.job_id, job.state))
                return True

        registry.register("acme", lambda: ScriptedSyncProvider(result=False))
        publishers = PublisherRegistry()
        publishers.register("tickets", TicketPublisher)

        async with create_runtime(registry, _settings(), publishers=publishers) as runtime:
            assert runtime.result_publisher is not None
            job = runtime.store.add(Job(provider="acme", publisher="tickets"))
            await asyncio.to_thread(runtime.worker.submit(job.job_id).result, 5)
            stored = await _wait_for_terminal(runtime, job.job_id)

        assert stored.state == JobState.FAILED
        assert published == [(job.job_id, JobState.FAILED)]

    @pytest.mark.asyncio
    async def test_failing_publisher_leaves_job_settled(self, registry):
        """A publisher that raises does not change the job's outcome."""

        class BrokenPublisher(BasePublisher):
            def publish(self, job: Job) -> bool:
                raise ConnectionError("tracker down")

        registry.register("acme", ScriptedSyncProvider)
        publishers = PublisherRegistry()
        publishers.register("tickets", BrokenPublisher)

        async with create_runtime(registry, _settings(), publishers=publishers) as runtime:
            job = runtime.store.add(Job(provider="acme", publisher="tickets"))
            report = await asyncio.to_thread(runtime.worker.submit(job.job_id).result, 5)
            stored = await _wait_for_terminal(runtime, job.job_id)

        assert report.outcome == DispatchOutcome.COMPLETED
        assert stored.state == JobState.COMPLETED

    @pytest.mark.asyncio
    async def test_no_publishers_by_default(self, registry):
        """Without a publisher registry nothing subscribes for publishing."""
        async with create_runtime(registry, _settings()) as runtime:
            assert runtime.result_publisher is None
