"""Job Dispatcher — drives one job through its provider's lifecycle.

Manifesto:
A dispatch request carries nothing but a job id. The dispatcher loads
the job, resolves and builds its provider, initializes it, checks that it
can take the job, runs it, and announces every step as a
:class:`StateTransitionEvent`. Whatever goes wrong along the way ends up
as one ``FAILED`` transition on the job; the caller always gets a clean
return.

ARCHITECTURE
────────────
::

    dispatch(job_id)
      │
      ├── store.get(job_id, SYSTEM)        ─ elevated read
      ├── resolver.resolve(job)            ─ ResolvedProvider (mode-tagged)
      ├── provider.initialize(job)
      │     ├── False → FAILED "Unable to initialize <name>"
      │     └── True  → (message) "Initialized <name>"
      ├── provider.is_available(job)
      │     ├── False → UNAVAILABLE
      │     └── True  → IN_PROGRESS
      └── branch on mode (once)
            ├── ASYNCHRONOUS: process(job); on_async_launch → LAUNCHED
            └── SYNCHRONOUS:  process(job) → COMPLETED | FAILED

    The attempt body returns a Result. Expected failures come back as
    Err(InitializationFailure | ExecutionFailure); anything raised is
    captured as Err by try_result. dispatch() owns the single FAILED
    emission for every Err.

    apply_async_outcome(job_id, success, message)
      └── re-entry hook for async jobs: one COMPLETED | FAILED, at most once

Related modules:
    resolver.py — builds the provider
    notifier.py — where transitions go
    worker.py   — runs dispatch() on a thread pool
    poller.py   — calls apply_async_outcome() for async providers

Tags:
    jobspine, execution, dispatcher, state-machine, error-containment
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from collections.abc import Callable

from jobspine.core.errors import ExecutionFailure, InitializationFailure
from jobspine.core.logging import LogContext, bind_context, get_logger, unbind_context
from jobspine.core.result import Err, Ok, Result, try_result

from .models import (
    SYSTEM_IDENTITY,
    DispatchOutcome,
    DispatchReport,
    Identity,
    Job,
    JobState,
    StateTransitionEvent,
)
from .notifier import StateNotifier
from .providers import ExecutionMode
from .resolver import ProviderResolver, ResolvedProvider
from .store import JobStore

logger = get_logger(__name__)

AsyncLaunchCallback = Callable[[Job, ResolvedProvider], None]

# Remembered async settlements, guarding the re-entry hook while the
# store's listener catches up.
_SETTLED_HISTORY = 4096


def failure_message(error: Exception) -> str | None:
    """Message carried by the ``FAILED`` transition for ``error``.

    A synchronous provider returning False gives no detail and none is
    synthesized.
    """
    if isinstance(error, ExecutionFailure):
        return error.detail
    return str(error) or type(error).__name__


class JobDispatcher:
    """Runs dispatch attempts and the async re-entry hook.

    Stateless between attempts apart from the settled-job history, so one
    instance is shared by every worker thread.

    Example:
        >>> notifier = RecordingNotifier()
        >>> dispatcher = JobDispatcher(store, ProviderResolver(registry), notifier)
        >>> report = dispatcher.dispatch(job.job_id)
        >>> report.outcome
        <DispatchOutcome.COMPLETED: 'completed'>
    """

    def __init__(
        self,
        store: JobStore,
        resolver: ProviderResolver,
        notifier: StateNotifier,
        *,
        identity: Identity = SYSTEM_IDENTITY,
        on_async_launch: AsyncLaunchCallback | None = None,
    ):
        self._store = store
        self._resolver = resolver
        self._notifier = notifier
        self._identity = identity
        self._on_async_launch = on_async_launch
        self._settle_lock = threading.Lock()
        self._launched: set[str] = set()
        self._settled: OrderedDict[str, None] = OrderedDict()

    @property
    def resolver(self) -> ProviderResolver:
        return self._resolver

    @property
    def identity(self) -> Identity:
        return self._identity

    def set_async_launch_callback(self, callback: AsyncLaunchCallback | None) -> None:
        self._on_async_launch = callback

    # ── Dispatch ────────────────────────────────────────────────────────

    def dispatch(self, job_id: str) -> DispatchReport:
        """Process one job. Never raises ``Exception`` subclasses."""
        with LogContext(job_id=job_id):
            logger.info("job_processing")
            try:
                result = try_result(lambda: self._attempt(job_id)).flat_map(lambda inner: inner)
            finally:
                unbind_context("provider")

            if result.is_ok():
                return result.unwrap()
            return self._fail(job_id, result.error)

    def _attempt(self, job_id: str) -> Result[DispatchReport]:
        job = self._store.get(job_id, self._identity)
        bind_context(provider=job.provider)

        resolved = self._resolver.resolve(job)
        provider = resolved.provider

        if not provider.initialize(job):
            return Err(InitializationFailure(resolved.name).with_context(
                job_id=job_id, provider_id=resolved.provider_id,
            ))

        self._emit(job_id, None, f"Initialized {resolved.name}")
        logger.info("provider_initialized", provider_name=resolved.name, mode=resolved.mode.value)

        if not provider.is_available(job):
            self._emit(job_id, JobState.UNAVAILABLE)
            logger.info("provider_unavailable", provider_name=resolved.name)
            return Ok(DispatchReport(job_id, DispatchOutcome.UNAVAILABLE))

        self._emit(job_id, JobState.IN_PROGRESS)

        if resolved.mode is ExecutionMode.ASYNCHRONOUS:
            # Terminal state arrives later through apply_async_outcome().
            provider.process(job)
            with self._settle_lock:
                self._launched.add(job_id)
            if self._on_async_launch is not None:
                self._on_async_launch(job, resolved)
            logger.info("job_launched", provider_name=resolved.name)
            return Ok(DispatchReport(job_id, DispatchOutcome.LAUNCHED))

        # Holds this thread until the provider finishes.
        if provider.process(job):
            self._emit(job_id, JobState.COMPLETED)
            logger.info("job_completed", provider_name=resolved.name)
            return Ok(DispatchReport(job_id, DispatchOutcome.COMPLETED))

        return Err(ExecutionFailure(resolved.name).with_context(
            job_id=job_id, provider_id=resolved.provider_id,
        ))

    def _fail(self, job_id: str, error: Exception) -> DispatchReport:
        message = failure_message(error)
        with self._settle_lock:
            self._launched.discard(job_id)
        if isinstance(error, (InitializationFailure, ExecutionFailure)):
            logger.warning("job_failed", reason=error.__class__.__name__, error=error.message)
        else:
            logger.error(
                "dispatch_error",
                error_type=type(error).__name__,
                error=str(error),
                exc_info=error,
            )
        self._emit(job_id, JobState.FAILED, message)
        return DispatchReport(job_id, DispatchOutcome.FAILED, message)

    def _emit(self, job_id: str, state: JobState | None, message: str | None = None) -> None:
        event = StateTransitionEvent(job_id=job_id, state=state, message=message)
        try:
            self._notifier.publish(event)
        except Exception as e:
            logger.error(
                "notifier_publish_failed",
                state=state.value if state else None,
                error=str(e),
            )

    # ── Async re-entry ──────────────────────────────────────────────────

    def apply_async_outcome(
        self,
        job_id: str,
        success: bool,
        message: str | None = None,
    ) -> bool:
        """Settle an asynchronous job that has already been launched.

        Emits exactly one ``COMPLETED`` or ``FAILED`` transition for a job
        this dispatcher launched, or one the store shows ``IN_PROGRESS``.
        Jobs that were never launched, repeated calls and late calls are
        ignored.

        Returns:
            True if a terminal transition was emitted
        """
        with LogContext(job_id=job_id):
            with self._settle_lock:
                if job_id in self._settled:
                    logger.warning("async_outcome_ignored", reason="already_settled")
                    return False

                loaded = try_result(lambda: self._store.get(job_id, self._identity))
                if loaded.is_err():
                    logger.error("async_outcome_rejected", error=str(loaded.error))
                    return False

                job = loaded.unwrap()
                if job.state.is_terminal:
                    logger.warning("async_outcome_ignored", reason="terminal", state=job.state.value)
                    self._launched.discard(job_id)
                    return False
                if job_id not in self._launched and job.state != JobState.IN_PROGRESS:
                    logger.warning(
                        "async_outcome_ignored", reason="not_launched", state=job.state.value
                    )
                    return False

                state = JobState.COMPLETED if success else JobState.FAILED
                self._emit(job_id, state, message)
                self._launched.discard(job_id)
                self._remember_settled(job_id)

            logger.info("async_outcome_applied", state=state.value)
            return True

    def _remember_settled(self, job_id: str) -> None:
        self._settled[job_id] = None
        while len(self._settled) > _SETTLED_HISTORY:
            self._settled.popitem(last=False)

    # ── Cancellation support ────────────────────────────────────────────

    def is_cancelable(self, job_id: str) -> bool:
        """Ask the job's provider whether the job can be canceled.

        Raises:
            StoreError: If the job cannot be loaded
            ResolutionError: If the provider cannot be resolved
        """
        job = self._store.get(job_id, self._identity)
        resolved = self._resolver.resolve(job)
        return bool(resolved.provider.is_cancelable(job))


__all__ = ["JobDispatcher", "AsyncLaunchCallback", "failure_message"]
