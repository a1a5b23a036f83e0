"""Runtime settings for jobspine.

Configuration is explicit, validated and environment-driven. Every field
can be set through a ``JOBSPINE_``-prefixed environment variable or a
``.env`` file.

Examples:
    >>> import os
    >>> os.environ["JOBSPINE_MAX_WORKERS"] = "8"
    >>> JobSpineSettings().max_workers
    8

Tags:
    settings, configuration, pydantic, environment, jobspine
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class JobSpineSettings(BaseSettings):
    """Settings for the dispatch runtime.

    Fields
    ──────
    max_workers        : Dispatch thread pool size; one blocked thread per
                         running synchronous job
    poll_interval      : Seconds between async outcome polls
    log_level          : Structlog log level
    log_json           : JSON logs (True), console (False), auto (None)
    service_name       : ``service.name`` stamped on every log line
    system_principal   : Principal name of the elevated dispatch identity
    validate_registry  : Validate every registered provider when the
                         runtime is built
    """

    model_config = SettingsConfigDict(
        env_prefix="JOBSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Dispatch ─────────────────────────────────────────────────
    max_workers: int = Field(default=4, ge=1)
    poll_interval: float = Field(default=5.0, gt=0)
    system_principal: str = "system"
    validate_registry: bool = True

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool | None = None
    service_name: str = "jobspine"


@lru_cache(maxsize=1)
def get_settings() -> JobSpineSettings:
    """Return the process-wide settings, read once from the environment."""
    return JobSpineSettings()


def reset_settings() -> None:
    """Forget cached settings (for testing)."""
    get_settings.cache_clear()


__all__ = ["JobSpineSettings", "get_settings", "reset_settings"]
