"""Async outcome poller — settles jobs run by asynchronous providers.

An asynchronous provider's ``process`` returns as soon as the work is
launched. The dispatcher hands each launched job to this poller
(``on_async_launch``), and the poller periodically asks the provider
instance for a :class:`ProviderOutcome`. Once one arrives it calls the
dispatcher's ``apply_async_outcome`` hook and forgets the job.

Usage::

    poller = AsyncOutcomePoller(dispatcher, interval=5.0)
    dispatcher.set_async_launch_callback(poller.track)
    poller.start()
    ...
    poller.stop()
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

from jobspine.core.logging import get_logger

from .dispatcher import JobDispatcher
from .models import Job, ProviderOutcome
from .providers import AsynchronousProvider
from .resolver import ResolvedProvider

logger = get_logger(__name__)


@dataclass
class TrackedJob:
    job: Job
    provider: AsynchronousProvider
    polls: int = 0


class AsyncOutcomePoller:
    """Polls launched asynchronous jobs until each reports an outcome."""

    def __init__(self, dispatcher: JobDispatcher, interval: float = 5.0):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._dispatcher = dispatcher
        self._interval = interval
        self._tracked: dict[str, TrackedJob] = {}
        self._lock = threading.Lock()
        self._shutdown = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def pending(self) -> int:
        """Number of jobs still waiting for an outcome."""
        with self._lock:
            return len(self._tracked)

    def track(self, job: Job, resolved: ResolvedProvider) -> None:
        """Start polling ``job``; matches ``AsyncLaunchCallback``."""
        if not isinstance(resolved.provider, AsynchronousProvider):
            raise TypeError(f"{resolved.name} is not an asynchronous provider")
        with self._lock:
            self._tracked[job.job_id] = TrackedJob(job=job, provider=resolved.provider)
        logger.debug("async_job_tracked", job_id=job.job_id, provider=resolved.provider_id)

    def untrack(self, job_id: str) -> bool:
        with self._lock:
            return self._tracked.pop(job_id, None) is not None

    def poll_once(self) -> int:
        """Poll every tracked job once.

        Returns:
            Number of jobs settled in this pass
        """
        with self._lock:
            snapshot = list(self._tracked.items())

        settled = 0
        for job_id, tracked in snapshot:
            tracked.polls += 1
            try:
                outcome = tracked.provider.poll(tracked.job)
            except Exception as e:
                logger.error("async_poll_failed", job_id=job_id, error=str(e))
                outcome = ProviderOutcome(success=False, message=str(e) or type(e).__name__)

            if outcome is None:
                continue

            self._dispatcher.apply_async_outcome(job_id, outcome.success, outcome.message)
            self.untrack(job_id)
            settled += 1
        return settled

    def start(self) -> None:
        """Poll in a background daemon thread until :meth:`stop`."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._shutdown.clear()
        self._thread = threading.Thread(
            target=self._run,
            name="jobspine-async-poller",
            daemon=True,
        )
        self._thread.start()
        logger.info("async_poller_started", interval=self._interval)

    def _run(self) -> None:
        while not self._shutdown.is_set():
            self.poll_once()
            self._shutdown.wait(self._interval)

    def stop(self, timeout: float | None = None) -> None:
        self._shutdown.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
            logger.info("async_poller_stopped", pending=self.pending)


__all__ = ["TrackedJob", "AsyncOutcomePoller"]
