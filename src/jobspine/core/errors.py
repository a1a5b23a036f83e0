"""
Structured error types for jobspine.

Provides a small hierarchy of typed errors carrying a category, retry
semantics, structured context and a chained cause. The dispatcher turns
every one of these into a ``FAILED`` transition; the metadata exists so the
log line written at that boundary says *what* failed and *where*.

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                       JobSpineError                           │
        │        (category, retryable, context, cause)                  │
        ├──────────────────────────────────────────────────────────────┤
        │                                                               │
        │  ResolutionError        ConfigError           ProviderError   │
        │  (RESOLUTION)           (CONFIG)              (PROVIDER)      │
        │       │                      │                     │          │
        │  ProviderNotFound      MisconfiguredProvider  Construction    │
        │  AmbiguousProvider     DuplicateProvider      Initialization  │
        │                                               Execution       │
        │                                                               │
        │  StoreError                                                   │
        │  (STORE)                                                      │
        │       │                                                       │
        │  JobNotFound                                                  │
        │  JobAccessDenied                                              │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> error = ProviderNotFoundError("acme-scanner", available=["nmap"])
    >>> error.category
    <ErrorCategory.RESOLUTION: 'RESOLUTION'>
    >>> error.context.provider_id
    'acme-scanner'

    >>> try:
    ...     raise RuntimeError("boom")
    ... except RuntimeError as e:
    ...     err = ProviderConstructionError("scanner", cause=e)
    >>> err.cause
    RuntimeError('boom')

Guardrails:
    ❌ DON'T: Raise for expected "not ready" provider conditions
    ✅ DO: Return False from initialize()/is_available()

    ❌ DON'T: Swallow the original exception when wrapping
    ✅ DO: Pass it as cause= for error chaining

Tags:
    error-handling, exception-hierarchy, error-context, jobspine
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and log routing."""

    RESOLUTION = "RESOLUTION"     # Unknown or ambiguous provider
    CONFIG = "CONFIG"             # Registry / provider contract violations
    PROVIDER = "PROVIDER"         # Provider construction or execution
    STORE = "STORE"               # Job store lookups
    INTERNAL = "INTERNAL"         # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"           # Uncategorized errors


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Attributes:
        job_id: Job being dispatched when the error occurred
        provider_id: Declared provider identifier of that job
        provider_name: Human-readable provider name, once resolved
        metadata: Additional key-value pairs
    """

    job_id: str | None = None
    provider_id: str | None = None
    provider_name: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["job_id", "provider_id", "provider_name"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class JobSpineError(Exception):
    """
    Base exception for all jobspine errors.

    Subclasses set ``default_category`` and ``default_retryable`` so callers
    only pass a message in the common case.

    Examples:
        >>> error = JobSpineError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(job_id="j-1").context.job_id
        'j-1'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> JobSpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise ResolutionError("No provider").with_context(
                job_id=job.job_id,
                provider_id=job.provider,
            )
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# RESOLUTION ERRORS
# =============================================================================


class ResolutionError(JobSpineError):
    """A job's declared provider could not be resolved to one implementation."""

    default_category = ErrorCategory.RESOLUTION
    default_retryable = False


class ProviderNotFoundError(ResolutionError):
    """No registered provider matches the declared identifier."""

    def __init__(self, provider_id: str, available: Iterable[str] = ()):
        self.provider_id = provider_id
        self.available = sorted(available)
        super().__init__(
            f"Unable to resolve provider '{provider_id}': no provider registered "
            f"under that identifier. Available providers: {self.available or 'none'}",
            context=ErrorContext(provider_id=provider_id),
        )


class AmbiguousProviderError(ResolutionError):
    """More than one registered provider matches the declared identifier."""

    def __init__(self, provider_id: str, candidates: Iterable[str]):
        self.provider_id = provider_id
        self.candidates = sorted(candidates)
        super().__init__(
            f"Unable to resolve provider '{provider_id}': identifier is ambiguous, "
            f"matches {self.candidates}",
            context=ErrorContext(provider_id=provider_id),
        )


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(JobSpineError):
    """
    Configuration error.

    Never retryable - the registry or provider code must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class MisconfiguredProviderError(ConfigError):
    """Provider implementation violates the capability or execution-mode contract."""

    def __init__(self, provider_id: str, reason: str):
        self.provider_id = provider_id
        self.reason = reason
        super().__init__(
            f"Provider '{provider_id}' is misconfigured: {reason}",
            context=ErrorContext(provider_id=provider_id),
        )


class DuplicateProviderError(ConfigError):
    """A provider identifier was registered twice."""

    def __init__(self, provider_id: str):
        self.provider_id = provider_id
        super().__init__(
            f"Provider '{provider_id}' is already registered",
            context=ErrorContext(provider_id=provider_id),
        )


class MisconfiguredPublisherError(ConfigError):
    """A registered publisher is not a concrete BasePublisher subclass."""

    def __init__(self, publisher_id: str, reason: str):
        self.publisher_id = publisher_id
        self.reason = reason
        super().__init__(
            f"Publisher '{publisher_id}' is misconfigured: {reason}",
            context=ErrorContext(metadata={"publisher_id": publisher_id}),
        )


# =============================================================================
# PROVIDER ERRORS
# =============================================================================


class ProviderError(JobSpineError):
    """Provider construction or execution error."""

    default_category = ErrorCategory.PROVIDER
    default_retryable = False


class ProviderConstructionError(ProviderError):
    """The provider factory raised while building an instance."""

    def __init__(self, provider_id: str, *, cause: Exception | None = None):
        self.provider_id = provider_id
        detail = f": {cause}" if cause is not None and str(cause) else ""
        super().__init__(
            f"Unable to construct provider '{provider_id}'{detail}",
            context=ErrorContext(provider_id=provider_id),
            cause=cause,
        )


class InitializationFailure(ProviderError):
    """``initialize()`` returned False."""

    def __init__(self, provider_name: str):
        self.provider_name = provider_name
        super().__init__(
            f"Unable to initialize {provider_name}",
            context=ErrorContext(provider_name=provider_name),
        )


class ExecutionFailure(ProviderError):
    """A provider reported that the job did not succeed.

    ``message`` may be empty: a synchronous provider returning False gives
    no detail, and none is synthesized for the resulting transition.
    """

    def __init__(self, provider_name: str, message: str | None = None):
        self.provider_name = provider_name
        self.detail = message
        super().__init__(
            message or f"{provider_name} reported failure",
            context=ErrorContext(provider_name=provider_name),
        )


# =============================================================================
# STORE ERRORS
# =============================================================================


class StoreError(JobSpineError):
    """Job store lookup error."""

    default_category = ErrorCategory.STORE
    default_retryable = False


class JobNotFoundError(StoreError):
    """No job exists with the requested identifier."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}", context=ErrorContext(job_id=job_id))


class JobAccessDeniedError(StoreError):
    """The requesting identity may not read this job."""

    def __init__(self, job_id: str, principal: str):
        self.job_id = job_id
        self.principal = principal
        super().__init__(
            f"Principal '{principal}' may not access job {job_id}",
            context=ErrorContext(job_id=job_id),
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, JobSpineError):
        return error.retryable
    return isinstance(error, (ConnectionError, TimeoutError))


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, JobSpineError):
        return error.category
    if isinstance(error, (TypeError, AttributeError)):
        return ErrorCategory.CONFIG
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "JobSpineError",
    "ResolutionError",
    "ProviderNotFoundError",
    "AmbiguousProviderError",
    "ConfigError",
    "MisconfiguredProviderError",
    "DuplicateProviderError",
    "MisconfiguredPublisherError",
    "ProviderError",
    "ProviderConstructionError",
    "InitializationFailure",
    "ExecutionFailure",
    "StoreError",
    "JobNotFoundError",
    "JobAccessDeniedError",
    "is_retryable",
    "categorize_error",
]
