"""Provider Registry — injectable id → provider factory lookup.

Manifesto:
A job names its provider with a string (``"nmap"``, ``"zap-scanner"``).
The registry decouples registration (at import time or startup, by a
plugin loader) from resolution (at dispatch time), and supports both a
global singleton and injectable instances for testing.

ARCHITECTURE
────────────
::

    ProviderRegistry
      ├── .register(id, factory, aliases=...)  ─ store factory
      ├── .get(id)                             ─ exact lookup
      ├── .find(identifier)                    ─ id/alias matches
      ├── .list_providers()                    ─ all registered ids
      └── .has(id)                             ─ existence check

    register_provider(id)      ─ class decorator (global registry)
    get_default_registry()     ─ module-level singleton
    reset_default_registry()   ─ clear for testing

Matching
────────
``find()`` compares the identifier case-insensitively against every
registered id and alias. Ids are unique, but aliases may overlap, so a
lookup can yield several entries; the resolver treats that as ambiguous.

Thread-safety
─────────────
A lock guards every mutation and every snapshot read. The registry is
read-mostly: populated at startup, read concurrently by dispatch threads.

Related modules:
    resolver.py   — turns a job into a ResolvedProvider using the registry
    providers.py  — the classes that get registered

Tags:
    jobspine, execution, registry, provider-registry, lookup
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from jobspine.core.errors import DuplicateProviderError

from .providers import BaseProvider

ProviderFactory = Callable[[], BaseProvider]


@dataclass(frozen=True)
class RegistryEntry:
    """One registered provider."""

    provider_id: str
    factory: ProviderFactory
    aliases: tuple[str, ...] = ()
    description: str | None = None
    tags: dict[str, str] = field(default_factory=dict)

    def matches(self, identifier: str) -> bool:
        needle = identifier.strip().casefold()
        return needle == self.provider_id.casefold() or any(
            needle == alias.casefold() for alias in self.aliases
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider_id": self.provider_id,
            "factory": getattr(self.factory, "__qualname__", repr(self.factory)),
            "aliases": list(self.aliases),
            "description": self.description,
            "tags": dict(self.tags),
        }


class ProviderRegistry:
    """Injectable provider registry.

    Can be passed to ProviderResolver for:
    - Testing (isolated registries per test)
    - Plugins (loaded at startup)

    Example:
        >>> registry = ProviderRegistry()
        >>>
        >>> @register_provider("echo", registry=registry)
        ... class EchoProvider(SynchronousProvider):
        ...     def process(self, job):
        ...         return True
        >>>
        >>> registry.get("echo").factory is EchoProvider
        True
    """

    def __init__(self):
        self._entries: dict[str, RegistryEntry] = {}
        self._lock = threading.Lock()

    def register(
        self,
        provider_id: str,
        factory: ProviderFactory,
        *,
        aliases: Iterable[str] = (),
        description: str | None = None,
        tags: dict[str, str] | None = None,
        validate: bool = True,
    ) -> RegistryEntry:
        """Register a provider factory.

        Args:
            provider_id: Identifier jobs use to name this provider
            factory: Zero-argument callable, usually the provider class
            aliases: Extra identifiers that also resolve to this provider
            description: Optional description for documentation
            tags: Optional tags for filtering/categorization
            validate: Classify the execution mode now when ``factory`` is a
                class, so misconfigured providers fail at startup

        Raises:
            ValueError: If ``provider_id`` is empty
            DuplicateProviderError: If ``provider_id`` is already registered
            MisconfiguredProviderError: If validation fails
        """
        provider_id = provider_id.strip() if provider_id else ""
        if not provider_id:
            raise ValueError("provider_id must be a non-empty string")

        if validate:
            self._validate(provider_id, factory)

        entry = RegistryEntry(
            provider_id=provider_id,
            factory=factory,
            aliases=tuple(a.strip() for a in aliases if a and a.strip()),
            description=description,
            tags=dict(tags or {}),
        )
        with self._lock:
            if provider_id in self._entries:
                raise DuplicateProviderError(provider_id)
            self._entries[provider_id] = entry
        return entry

    def _validate(self, provider_id: str, factory: ProviderFactory) -> None:
        """Reject class factories that break the provider contract.

        Subclasses registering other plugin kinds override this.
        """
        if isinstance(factory, type):
            from .resolver import classify

            classify(provider_id, factory)

    def get(self, provider_id: str) -> RegistryEntry:
        """Get an entry by exact id.

        Raises:
            KeyError: If no provider is registered under ``provider_id``
        """
        with self._lock:
            return self._entries[provider_id]

    def has(self, provider_id: str) -> bool:
        """Check if a provider id is registered."""
        with self._lock:
            return provider_id in self._entries

    def find(self, identifier: str) -> list[RegistryEntry]:
        """All entries whose id or alias matches ``identifier``."""
        with self._lock:
            entries = list(self._entries.values())
        return [entry for entry in entries if entry.matches(identifier)]

    def entries(self) -> list[RegistryEntry]:
        """Snapshot of all entries, sorted by id."""
        with self._lock:
            return sorted(self._entries.values(), key=lambda e: e.provider_id)

    def list_providers(self) -> list[str]:
        """List all registered provider ids."""
        return [entry.provider_id for entry in self.entries()]

    def list_with_metadata(self) -> list[dict[str, Any]]:
        """List entries as dicts.

        Useful for building documentation or admin UIs.
        """
        return [entry.to_dict() for entry in self.entries()]

    def unregister(self, provider_id: str) -> bool:
        """Unregister a provider.

        Returns:
            True if the provider was removed, False if not found
        """
        with self._lock:
            return self._entries.pop(provider_id, None) is not None

    def clear(self) -> None:
        """Clear all providers (for testing)."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# === GLOBAL DEFAULT REGISTRY ===

_default_registry: ProviderRegistry | None = None
_default_registry_lock = threading.Lock()


def get_default_registry() -> ProviderRegistry:
    """Get the global default registry.

    Creates it lazily on first access.
    """
    global _default_registry
    with _default_registry_lock:
        if _default_registry is None:
            _default_registry = ProviderRegistry()
        return _default_registry


def reset_default_registry() -> None:
    """Reset the global registry (for testing)."""
    global _default_registry
    with _default_registry_lock:
        _default_registry = None


# === DECORATOR API ===


def register_provider(
    provider_id: str,
    registry: ProviderRegistry | None = None,
    *,
    aliases: Iterable[str] = (),
    description: str | None = None,
    tags: dict[str, str] | None = None,
):
    """Class decorator to register a provider.

    Args:
        provider_id: Identifier jobs use to name this provider
        registry: Optional registry (uses global if None)
        aliases: Extra identifiers
        description: Optional description (defaults to the class docstring)
        tags: Optional tags

    Example:
        >>> @register_provider("nmap")
        ... class NmapProvider(AsynchronousProvider):
        ...     def process(self, job):
        ...         launch_scan(job.params["target"])
    """

    def decorator(cls: type[BaseProvider]) -> type[BaseProvider]:
        target = registry if registry is not None else get_default_registry()
        target.register(
            provider_id,
            cls,
            aliases=aliases,
            description=description or cls.__doc__,
            tags=tags,
        )
        return cls

    return decorator


__all__ = [
    "ProviderFactory",
    "RegistryEntry",
    "ProviderRegistry",
    "get_default_registry",
    "reset_default_registry",
    "register_provider",
]
