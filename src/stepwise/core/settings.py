"""Engine configuration and environment-driven settings.

Two layers:

``EngineConfig``
    The explicit configuration value every engine entry point accepts as
    ``config=``.  Frozen, validated by pydantic, and never read from the
    environment by the engine itself.  ``None`` means
    :data:`DEFAULT_ENGINE_CONFIG`.

``StepwiseSettings``
    Process settings for applications embedding stepwise, read from
    ``STEPWISE_*`` environment variables and ``.env`` files via
    pydantic-settings.  ``engine_config()`` turns them into an
    ``EngineConfig`` the application then passes along.

Examples:
    >>> from stepwise.core.settings import EngineConfig
    >>> EngineConfig().wrap_step_errors
    True
    >>> EngineConfig(wrap_step_errors=False).wrap_step_errors
    False

Tags:
    stepwise, configuration, settings, pydantic, environment

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineConfig(BaseModel):
    """Configuration threaded into the pipeline engine.

    Fields
    ──────
    wrap_step_errors : Classify explicit failures and aborts as
                       ExplicitFailure / AbortedExecution. When False,
                       Err payloads pass through raw and exceptions or
                       thrown values propagate out of the engine.
                       Contract violations are detected either way.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    wrap_step_errors: bool = True


DEFAULT_ENGINE_CONFIG = EngineConfig()


def resolve_config(config: EngineConfig | None) -> EngineConfig:
    """Return ``config`` or the documented default."""
    return config if config is not None else DEFAULT_ENGINE_CONFIG


class StepwiseSettings(BaseSettings):
    """Environment-driven settings for applications using stepwise.

    All fields can be set via ``STEPWISE_*`` environment variables (e.g.
    ``STEPWISE_WRAP_STEP_ERRORS=false``) or a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="STEPWISE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Engine ───────────────────────────────────────────────────
    wrap_step_errors: bool = Field(default=True)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: Literal["console", "json"] = Field(default="console")
    service_name: str = Field(default="stepwise")

    def engine_config(self) -> EngineConfig:
        """Build the EngineConfig these settings describe."""
        return EngineConfig(wrap_step_errors=self.wrap_step_errors)


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, StepwiseSettings] = {}


def get_settings(*, _force_reload: bool = False) -> StepwiseSettings:
    """Load, validate, and cache a :class:`StepwiseSettings` instance.

    Parameters
    ----------
    _force_reload:
        Bypass cache and re-read the environment.
    """
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]

    settings = StepwiseSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Drop cached settings (used by tests)."""
    _settings_cache.clear()


__all__ = [
    "EngineConfig",
    "DEFAULT_ENGINE_CONFIG",
    "resolve_config",
    "StepwiseSettings",
    "get_settings",
    "clear_settings_cache",
]
