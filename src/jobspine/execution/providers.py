"""Provider capability model — the contract every execution backend satisfies.

Manifesto:
A provider is the thing that actually runs a job: a scanner, a build
farm, a remote API. The dispatcher does not care how; it needs to prepare
the provider, ask whether it can take the job right now, and then either
wait for it or let it run in the background. Blocking and non-blocking
backends get separate base classes so neither has to pretend to be the
other.

ARCHITECTURE
────────────
::

    BaseProvider (ABC)
      ├── .name                 ─ human-readable provider name
      ├── .initialize(job)      ─ per-job setup          (default: True)
      ├── .is_available(job)    ─ capacity/preconditions (default: True)
      └── .is_cancelable(job)   ─ cancellation support   (default: True)

    SynchronousProvider(BaseProvider)
      └── .process(job) -> bool  ─ blocks until done; bool is the outcome

    AsynchronousProvider(BaseProvider)
      ├── .process(job) -> None  ─ launches work, returns immediately
      └── .poll(job)             ─ ProviderOutcome once finished, else None

Example:
    >>> class EchoProvider(SynchronousProvider):
    ...     name = "Echo"
    ...
    ...     def process(self, job: Job) -> bool:
    ...         print(job.params.get("text"))
    ...         return True

Related modules:
    registry.py   — provider id → factory mapping
    resolver.py   — classifies a provider into one ExecutionMode
    dispatcher.py — drives a provider through its lifecycle

Tags:
    jobspine, execution, provider, plugin, interface, abc
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum

from .models import Job, ProviderOutcome


class ExecutionMode(str, Enum):
    """How a provider runs a job."""

    SYNCHRONOUS = "synchronous"
    ASYNCHRONOUS = "asynchronous"


class BaseProvider(ABC):
    """Common capability surface of every provider.

    Subclass :class:`SynchronousProvider` or :class:`AsynchronousProvider`,
    never this class directly. Providers are built with no arguments; job
    specific configuration belongs in :meth:`initialize`.
    """

    name: str = ""
    """Human-readable name; falls back to the class name when empty"""

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if not cls.__dict__.get("name"):
            cls.name = cls.__name__

    def initialize(self, job: Job) -> bool:
        """Prepare this provider instance for ``job``.

        Called before any other method. Return False when the provider
        cannot prepare itself; do not raise for expected conditions.
        """
        return True

    def is_available(self, job: Job) -> bool:
        """Whether the provider can take ``job`` right now.

        Some providers are always available, others limit how many jobs of
        a kind may run at once.
        """
        return True

    def is_cancelable(self, job: Job) -> bool:
        """Whether an in-flight ``job`` of this provider can be canceled."""
        return True


class SynchronousProvider(BaseProvider):
    """Provider whose ``process`` blocks until the job is finished."""

    execution_mode = ExecutionMode.SYNCHRONOUS

    @abstractmethod
    def process(self, job: Job) -> bool:
        """Run ``job`` to completion. True means success."""


class AsynchronousProvider(BaseProvider):
    """Provider whose ``process`` launches work and returns immediately.

    The outcome is reported later through the dispatcher's
    ``apply_async_outcome`` hook, either by the provider itself or by the
    :class:`~jobspine.execution.poller.AsyncOutcomePoller` calling
    :meth:`poll`.
    """

    execution_mode = ExecutionMode.ASYNCHRONOUS

    @abstractmethod
    def process(self, job: Job) -> None:
        """Start ``job`` and return without waiting for it."""

    def poll(self, job: Job) -> ProviderOutcome | None:
        """Report the outcome of ``job`` once finished; None while running."""
        return None


__all__ = [
    "ExecutionMode",
    "BaseProvider",
    "SynchronousProvider",
    "AsynchronousProvider",
]
