"""Provider Resolver — job → constructed, classified provider.

Looks up the job's declared provider identifier in a
:class:`ProviderRegistry`, checks that the implementation satisfies the
capability contract and belongs to exactly one execution mode, and builds
a fresh instance with its zero-argument factory.

The result is a tagged variant: :class:`ResolvedProvider` carries the
``ExecutionMode`` next to the instance, and the dispatcher branches on
that tag once instead of type-checking the provider along the way.

Resolution never reads job state and never mutates the job.
"""

from __future__ import annotations

from dataclasses import dataclass

from jobspine.core.errors import (
    AmbiguousProviderError,
    MisconfiguredProviderError,
    ProviderConstructionError,
    ProviderNotFoundError,
    ResolutionError,
)

from .models import Job
from .providers import AsynchronousProvider, BaseProvider, ExecutionMode, SynchronousProvider
from .registry import ProviderFactory, ProviderRegistry, RegistryEntry

REQUIRED_CAPABILITIES = ("initialize", "is_available", "is_cancelable", "process")


def classify(provider_id: str, implementation: type) -> ExecutionMode:
    """Determine the execution mode of a provider class.

    Raises:
        MisconfiguredProviderError: If the class is not a provider, implements
            both execution modes or neither, is abstract, or lacks one of the
            capability methods.
    """
    if not isinstance(implementation, type) or not issubclass(implementation, BaseProvider):
        raise MisconfiguredProviderError(
            provider_id, f"{implementation!r} is not a BaseProvider subclass"
        )

    is_sync = issubclass(implementation, SynchronousProvider)
    is_async = issubclass(implementation, AsynchronousProvider)
    if is_sync and is_async:
        raise MisconfiguredProviderError(
            provider_id,
            f"{implementation.__name__} implements both synchronous and asynchronous execution",
        )
    if not is_sync and not is_async:
        raise MisconfiguredProviderError(
            provider_id,
            f"{implementation.__name__} must subclass SynchronousProvider or AsynchronousProvider",
        )

    missing = [
        name for name in REQUIRED_CAPABILITIES
        if not callable(getattr(implementation, name, None))
    ]
    if missing:
        raise MisconfiguredProviderError(
            provider_id, f"{implementation.__name__} lacks {', '.join(missing)}"
        )

    abstract = sorted(getattr(implementation, "__abstractmethods__", ()))
    if abstract:
        raise MisconfiguredProviderError(
            provider_id,
            f"{implementation.__name__} does not implement {', '.join(abstract)}",
        )

    return ExecutionMode.SYNCHRONOUS if is_sync else ExecutionMode.ASYNCHRONOUS


@dataclass(frozen=True)
class ProviderDescriptor:
    """Resolution metadata for a declared provider identifier.

    ``implementation`` and ``mode`` are None when the factory is a plain
    function; they are filled in once an instance has been built.
    """

    provider_id: str
    factory: ProviderFactory
    implementation: type[BaseProvider] | None
    mode: ExecutionMode | None

    @property
    def name(self) -> str:
        if self.implementation is not None:
            return self.implementation.name
        return self.provider_id


@dataclass(frozen=True)
class ResolvedProvider:
    """A constructed provider plus its execution-mode tag."""

    descriptor: ProviderDescriptor
    provider: BaseProvider

    @property
    def mode(self) -> ExecutionMode:
        return self.descriptor.mode

    @property
    def name(self) -> str:
        return self.provider.name or self.descriptor.provider_id

    @property
    def provider_id(self) -> str:
        return self.descriptor.provider_id


class ProviderResolver:
    """Resolves jobs to providers using a registry.

    Example:
        >>> resolver = ProviderResolver(registry)
        >>> resolved = resolver.resolve(Job(provider="echo"))
        >>> resolved.mode
        <ExecutionMode.SYNCHRONOUS: 'synchronous'>
    """

    def __init__(self, registry: ProviderRegistry):
        self._registry = registry

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    def lookup(self, identifier: str | None) -> RegistryEntry:
        """Find the single registry entry for ``identifier``.

        Raises:
            ResolutionError: If the identifier is empty
            ProviderNotFoundError: If nothing matches
            AmbiguousProviderError: If more than one entry matches
        """
        if not identifier or not identifier.strip():
            raise ResolutionError("Unable to resolve provider: job declares no provider identifier")

        matches = self._registry.find(identifier)
        if not matches:
            raise ProviderNotFoundError(identifier, self._registry.list_providers())
        if len(matches) > 1:
            raise AmbiguousProviderError(identifier, [m.provider_id for m in matches])
        return matches[0]

    def describe(self, job: Job) -> ProviderDescriptor:
        """Compute the descriptor for ``job``'s declared provider."""
        entry = self.lookup(job.provider)
        if isinstance(entry.factory, type):
            return ProviderDescriptor(
                provider_id=entry.provider_id,
                factory=entry.factory,
                implementation=entry.factory,
                mode=classify(entry.provider_id, entry.factory),
            )
        return ProviderDescriptor(
            provider_id=entry.provider_id,
            factory=entry.factory,
            implementation=None,
            mode=None,
        )

    def resolve(self, job: Job) -> ResolvedProvider:
        """Describe and construct the provider for ``job``.

        Raises:
            ResolutionError: If the identifier cannot be resolved
            MisconfiguredProviderError: If the implementation breaks the contract
            ProviderConstructionError: If the factory raises
        """
        descriptor = self.describe(job)
        try:
            provider = descriptor.factory()
        except Exception as e:
            raise ProviderConstructionError(descriptor.provider_id, cause=e) from e

        implementation = type(provider)
        if descriptor.implementation is None:
            descriptor = ProviderDescriptor(
                provider_id=descriptor.provider_id,
                factory=descriptor.factory,
                implementation=implementation,
                mode=classify(descriptor.provider_id, implementation),
            )
        elif not isinstance(provider, descriptor.implementation):
            raise MisconfiguredProviderError(
                descriptor.provider_id,
                f"factory returned {implementation.__name__}, "
                f"expected {descriptor.implementation.__name__}",
            )

        return ResolvedProvider(descriptor=descriptor, provider=provider)

    def validate_all(self) -> list[ProviderDescriptor]:
        """Classify every registered class factory; for startup checks.

        Raises:
            MisconfiguredProviderError: On the first invalid provider
        """
        descriptors = []
        for entry in self._registry.entries():
            if isinstance(entry.factory, type):
                descriptors.append(
                    ProviderDescriptor(
                        provider_id=entry.provider_id,
                        factory=entry.factory,
                        implementation=entry.factory,
                        mode=classify(entry.provider_id, entry.factory),
                    )
                )
        return descriptors


__all__ = [
    "REQUIRED_CAPABILITIES",
    "classify",
    "ProviderDescriptor",
    "ResolvedProvider",
    "ProviderResolver",
]
