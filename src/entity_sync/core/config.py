"""Configuration management.

Loads from TOML config files + environment variables.
Uses pydantic-settings for validation and env var overriding.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings

from .enums import FailurePolicy, KeyMode
from .errors import ConfigError


# ---------------------------------------------------------------------------
# Sub-configs
# ---------------------------------------------------------------------------

class MongoConfig(BaseModel):
    url: str = "mongodb://localhost:27017"
    database: str = "entity_sync"
    app_name: str = "entity-sync"
    server_selection_timeout_ms: int = 5000
    max_pool_size: int = 10


class QueueConfig(BaseModel):
    failure_policy: FailurePolicy = FailurePolicy.HALT
    name: str = "entity-sync-queue"


class MappingConfig(BaseModel):
    key_mode: KeyMode = KeyMode.OBJECT_ID
    id_field: str = "id"
    key_field: str = "_id"


class ObservabilityConfig(BaseModel):
    log_level: str = "INFO"
    log_format: str = "json"  # "json" or "console"
    metrics_port: int = 9090
    metrics_enabled: bool = False


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """Top-level application settings.

    Loaded from TOML config files, overridden by environment variables.
    """

    mongo: MongoConfig = Field(default_factory=MongoConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    mapping: MappingConfig = Field(default_factory=MappingConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    model_config = {"env_prefix": "ENTITY_SYNC_", "env_nested_delimiter": "__"}


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from TOML file + env vars.

    Args:
        config_path: Path to TOML config file (optional).
        overrides: Dict of overrides to apply on top.

    Raises:
        ConfigError: if the file cannot be parsed or a value is invalid.
    """
    data: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            import tomli

            with open(path, "rb") as f:
                try:
                    data = tomli.load(f)
                except tomli.TOMLDecodeError as exc:
                    raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc

    if overrides:
        data.update(overrides)

    try:
        return Settings(**data)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
