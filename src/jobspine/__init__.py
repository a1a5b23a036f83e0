"""jobspine — dispatch jobs to pluggable providers and track their state.

Quick start::

    from jobspine import Job, ProviderRegistry, SynchronousProvider, create_runtime

    class EchoProvider(SynchronousProvider):
        def process(self, job):
            print(job.params["text"])
            return True

    registry = ProviderRegistry()
    registry.register("echo", EchoProvider)
"""

from jobspine.execution import (
    SYSTEM_IDENTITY,
    AsynchronousProvider,
    BaseProvider,
    BasePublisher,
    DispatchOutcome,
    DispatchReport,
    DispatchRuntime,
    DispatchWorker,
    ExecutionMode,
    Job,
    JobDispatcher,
    JobState,
    ProviderOutcome,
    ProviderRegistry,
    ProviderResolver,
    PublisherRegistry,
    StateTransitionEvent,
    SynchronousProvider,
    create_runtime,
    register_provider,
)

__version__ = "0.1.0"

__all__ = [
    "SYSTEM_IDENTITY",
    "AsynchronousProvider",
    "BaseProvider",
    "BasePublisher",
    "DispatchOutcome",
    "DispatchReport",
    "DispatchRuntime",
    "DispatchWorker",
    "ExecutionMode",
    "Job",
    "JobDispatcher",
    "JobState",
    "ProviderOutcome",
    "ProviderRegistry",
    "ProviderResolver",
    "PublisherRegistry",
    "StateTransitionEvent",
    "SynchronousProvider",
    "create_runtime",
    "register_provider",
    "__version__",
]
