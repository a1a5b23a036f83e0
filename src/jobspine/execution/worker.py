"""Dispatch worker — thread pool that runs dispatch attempts.

Each dispatch attempt gets its own pool thread. A synchronous provider
holds that thread for the whole job, so ``max_workers`` has to cover the
expected number of concurrently blocking jobs.

Inbound requests arrive either as direct ``submit(job_id)`` calls or as
``job.process`` events on the bus (payload ``{"job_id": ...}``), which the
worker picks up once attached.

Usage::

    worker = DispatchWorker(dispatcher, max_workers=8)
    await worker.attach(bus)
    await request_dispatch(bus, job.job_id)
    ...
    worker.shutdown()
"""

from __future__ import annotations

from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor

from jobspine.core.events import Event, EventBus
from jobspine.core.logging import get_logger

from .dispatcher import JobDispatcher
from .models import DispatchReport

logger = get_logger(__name__)

PROCESS_REQUEST = "job.process"


def process_request(job_id: str, source: str = "jobspine.client") -> Event:
    """Build the bus event that asks for ``job_id`` to be dispatched."""
    return Event(
        event_type=PROCESS_REQUEST,
        source=source,
        payload={"job_id": job_id},
        correlation_id=job_id,
    )


async def request_dispatch(bus: EventBus, job_id: str, source: str = "jobspine.client") -> None:
    """Publish a dispatch request for ``job_id``."""
    await bus.publish(process_request(job_id, source))


class DispatchWorker:
    """Runs :meth:`JobDispatcher.dispatch` on a ``ThreadPoolExecutor``.

    Example:
        >>> with DispatchWorker(dispatcher, max_workers=4) as worker:
        ...     future = worker.submit(job.job_id)
        ...     report = future.result()
    """

    def __init__(self, dispatcher: JobDispatcher, max_workers: int = 4):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._dispatcher = dispatcher
        self._max_workers = max_workers
        self._pool = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="jobspine-dispatch",
        )
        self._subscription_id: str | None = None
        self._closed = False

    @property
    def max_workers(self) -> int:
        return self._max_workers

    def submit(self, job_id: str) -> Future[DispatchReport]:
        """Queue one dispatch attempt.

        Raises:
            RuntimeError: If the worker has been shut down
        """
        if self._closed:
            raise RuntimeError("DispatchWorker has been shut down")
        logger.debug("dispatch_submitted", job_id=job_id)
        return self._pool.submit(self._dispatcher.dispatch, job_id)

    def submit_many(self, job_ids: Iterable[str]) -> list[Future[DispatchReport]]:
        return [self.submit(job_id) for job_id in job_ids]

    async def attach(self, bus: EventBus) -> str:
        """Subscribe to ``job.process`` requests on ``bus``."""
        self._subscription_id = await bus.subscribe(PROCESS_REQUEST, self._on_request)
        return self._subscription_id

    async def detach(self, bus: EventBus) -> None:
        if self._subscription_id is not None:
            await bus.unsubscribe(self._subscription_id)
            self._subscription_id = None

    async def _on_request(self, event: Event) -> None:
        job_id = event.payload.get("job_id")
        if not job_id:
            logger.warning("dispatch_request_ignored", reason="missing_job_id", event_id=event.event_id)
            return
        self.submit(str(job_id))

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work and drain the pool.

        Args:
            wait: If True, wait for running attempts to finish
        """
        self._closed = True
        self._pool.shutdown(wait=wait)

    def __enter__(self) -> DispatchWorker:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown(wait=True)


__all__ = ["PROCESS_REQUEST", "process_request", "request_dispatch", "DispatchWorker"]
