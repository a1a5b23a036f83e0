"""
Tests for DispatchWorker — the thread pool that runs dispatch attempts.

Exercises direct submission, bus-driven requests, and the guarantee that
a blocking synchronous provider does not stall attempts on other threads.
"""

from __future__ import annotations

import threading

import pytest

from conftest import ScriptedSyncProvider
from jobspine.core.events import Event
from jobspine.core.events.memory import InMemoryEventBus
from jobspine.execution.models import DispatchOutcome, Job, JobState
from jobspine.execution.providers import SynchronousProvider
from jobspine.execution.worker import PROCESS_REQUEST, DispatchWorker, process_request, request_dispatch


class GateProvider(SynchronousProvider):
    """Blocks in process() until the shared gate opens."""

    gate = threading.Event()
    entered = threading.Event()

    def process(self, job: Job) -> bool:
        GateProvider.entered.set()
        return GateProvider.gate.wait(timeout=5)


class TestSubmit:
    """Direct submission."""

    def test_submit_returns_report(self, dispatcher, registry, add_job):
        """The future resolves to the dispatch report."""
        registry.register("acme", ScriptedSyncProvider)
        job = add_job("acme")

        with DispatchWorker(dispatcher, max_workers=2) as worker:
            report = worker.submit(job.job_id).result(timeout=5)

        assert report.outcome == DispatchOutcome.COMPLETED

    def test_submit_many(self, dispatcher, notifier, registry, add_job):
        """Every submitted job is dispatched."""
        registry.register("acme", ScriptedSyncProvider)
        jobs = [add_job("acme") for _ in range(10)]

        with DispatchWorker(dispatcher, max_workers=4) as worker:
            futures = worker.submit_many(j.job_id for j in jobs)
            reports = [f.result(timeout=5) for f in futures]

        assert {r.job_id for r in reports} == {j.job_id for j in jobs}
        assert all(r.outcome == DispatchOutcome.COMPLETED for r in reports)

    def test_submit_after_shutdown(self, dispatcher):
        """A shut-down worker rejects new work."""
        worker = DispatchWorker(dispatcher)
        worker.shutdown()
        with pytest.raises(RuntimeError):
            worker.submit("j-1")

    def test_invalid_pool_size(self, dispatcher):
        """max_workers must be positive."""
        with pytest.raises(ValueError):
            DispatchWorker(dispatcher, max_workers=0)

    def test_blocking_job_does_not_stall_others(self, dispatcher, notifier, registry, add_job):
        """A blocked synchronous job leaves other threads free."""
        GateProvider.gate.clear()
        GateProvider.entered.clear()
        registry.register("gate", GateProvider)
        registry.register("fast", ScriptedSyncProvider)
        slow = add_job("gate")
        fast = add_job("fast")

        with DispatchWorker(dispatcher, max_workers=2) as worker:
            slow_future = worker.submit(slow.job_id)
            assert GateProvider.entered.wait(timeout=5)
            fast_report = worker.submit(fast.job_id).result(timeout=5)
            assert not slow_future.done()
            GateProvider.gate.set()
            slow_report = slow_future.result(timeout=5)

        assert fast_report.outcome == DispatchOutcome.COMPLETED
        assert slow_report.outcome == DispatchOutcome.COMPLETED
        assert notifier.for_job(slow.job_id)[-1].state == JobState.COMPLETED


class TestBusRequests:
    """job.process requests on the event bus."""

    def test_process_request_event(self):
        """process_request builds a job.process event."""
        event = process_request("j-1")
        assert event.event_type == PROCESS_REQUEST
        assert event.payload == {"job_id": "j-1"}
        assert event.correlation_id == "j-1"

    @pytest.mark.asyncio
    async def test_attached_worker_dispatches(self, dispatcher, notifier, registry, add_job):
        """A published request is dispatched by the attached worker."""
        registry.register("acme", ScriptedSyncProvider)
        job = add_job("acme")
        bus = InMemoryEventBus()
        worker = DispatchWorker(dispatcher, max_workers=1)

        sub_id = await worker.attach(bus)
        assert sub_id.startswith("sub_")
        await request_dispatch(bus, job.job_id)
        worker.shutdown(wait=True)

        assert notifier.for_job(job.job_id)[-1].state == JobState.COMPLETED

    @pytest.mark.asyncio
    async def test_request_without_job_id_ignored(self, dispatcher, notifier):
        """Requests with no job id are dropped."""
        bus = InMemoryEventBus()
        worker = DispatchWorker(dispatcher, max_workers=1)
        await worker.attach(bus)

        await bus.publish(Event(event_type=PROCESS_REQUEST, source="test", payload={}))
        worker.shutdown(wait=True)

        assert notifier.events == []

    @pytest.mark.asyncio
    async def test_detach(self, dispatcher, notifier, registry, add_job):
        """A detached worker stops receiving requests."""
        registry.register("acme", ScriptedSyncProvider)
        job = add_job("acme")
        bus = InMemoryEventBus()
        worker = DispatchWorker(dispatcher, max_workers=1)
        await worker.attach(bus)
        await worker.detach(bus)

        await request_dispatch(bus, job.job_id)
        worker.shutdown(wait=True)

        assert notifier.events == []
