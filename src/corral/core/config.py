"""Configuration management.

Loads from TOML config files + environment variables.
Uses pydantic-settings for validation and env var overriding.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings

from .errors import ConfigError


class ObservabilityConfig(BaseModel):
    log_level: str = "INFO"
    log_format: str = "json"  # "json" or "console"
    metrics_enabled: bool = False
    metrics_port: int = 9090


class CorralSettings(BaseSettings):
    """Top-level settings.

    Loaded from TOML config files, overridden by environment variables
    (``CORRAL_UPPER_SENTINEL=4096``, ``CORRAL_OBSERVABILITY__LOG_LEVEL=DEBUG``).
    """

    # Stand-ins for an unset bound; chosen so the query is always satisfied.
    lower_sentinel: float = 1.0
    upper_sentinel: float = 20000.0
    unit: str = "px"  # used when rendering queries as media features

    # Late subscribers are called at once when the state already matches.
    replay_on_subscribe: bool = True

    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    model_config = {"env_prefix": "CORRAL_", "env_nested_delimiter": "__"}

    @model_validator(mode="after")
    def validate_sentinels(self) -> CorralSettings:
        if self.lower_sentinel >= self.upper_sentinel:
            raise ConfigError(
                f"lower_sentinel ({self.lower_sentinel}) must be below "
                f"upper_sentinel ({self.upper_sentinel})"
            )
        return self


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> CorralSettings:
    """Load settings from TOML file + env vars.

    Args:
        config_path: Path to TOML config file (optional).
        overrides: Dict of overrides to apply on top.
    """
    data: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            import tomli

            with open(path, "rb") as f:
                data = tomli.load(f)
        else:
            raise ConfigError(f"Config file not found: {path}")

    if overrides:
        data.update(overrides)

    return CorralSettings(**data)
