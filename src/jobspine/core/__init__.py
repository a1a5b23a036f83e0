"""Shared infrastructure: errors, result envelope, logging, settings, events."""

from jobspine.core.errors import (
    AmbiguousProviderError,
    ConfigError,
    DuplicateProviderError,
    ErrorCategory,
    ErrorContext,
    ExecutionFailure,
    InitializationFailure,
    JobAccessDeniedError,
    JobNotFoundError,
    JobSpineError,
    MisconfiguredProviderError,
    MisconfiguredPublisherError,
    ProviderConstructionError,
    ProviderError,
    ProviderNotFoundError,
    ResolutionError,
    StoreError,
)
from jobspine.core.result import Err, Ok, Result, try_result

__all__ = [
    "AmbiguousProviderError",
    "ConfigError",
    "DuplicateProviderError",
    "MisconfiguredPublisherError",
    "ErrorCategory",
    "ErrorContext",
    "ExecutionFailure",
    "InitializationFailure",
    "JobAccessDeniedError",
    "JobNotFoundError",
    "JobSpineError",
    "MisconfiguredProviderError",
    "ProviderConstructionError",
    "ProviderError",
    "ProviderNotFoundError",
    "ResolutionError",
    "StoreError",
    "Err",
    "Ok",
    "Result",
    "try_result",
]
