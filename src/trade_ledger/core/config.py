"""Ledger configuration.

An optional TOML file supplies the base values; ``TRADE_LEDGER_*``
environment variables (``__`` between nested names) override them.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from .enums import SortDirection, SortKey


# ---------------------------------------------------------------------------
# Sub-configs
# ---------------------------------------------------------------------------

class ReviewConfig(BaseModel):
    audit_reminders_enabled: bool = True
    milestone_frequency: int = Field(default=10, ge=0)  # 0 disables milestones
    streak_threshold: int = Field(default=3, ge=1)  # Consecutive losses before prompting
    dismiss_window: int = Field(default=10, ge=1)  # Trades suppressed after a dismiss


class ViewConfig(BaseModel):
    page_size: int = Field(default=20, ge=1)
    sort_key: SortKey = SortKey.ID
    sort_direction: SortDirection = SortDirection.DESCENDING


class StorageConfig(BaseModel):
    path: str = "data/ledger.json"


class AuditConfig(BaseModel):
    api_key_env: str = "ANTHROPIC_API_KEY"  # Name of env var holding the API key
    model: str = "claude-sonnet-4-5-20250929"
    max_tokens: int = 4096


class ObservabilityConfig(BaseModel):
    log_level: str = "INFO"
    log_format: str = "console"  # "json" or "console"


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """All ledger settings, one sub-config per concern."""

    review: ReviewConfig = Field(default_factory=ReviewConfig)
    view: ViewConfig = Field(default_factory=ViewConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    model_config = {"env_prefix": "TRADE_LEDGER_", "env_nested_delimiter": "__"}


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from TOML file + env vars.

    Args:
        config_path: Path to TOML config file (optional).  A missing file
            is ignored; a file that is not valid TOML raises ConfigError.
        overrides: Dict of overrides to apply on top.
    """
    data: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            import tomli

            from .errors import ConfigError

            try:
                with open(path, "rb") as f:
                    data = tomli.load(f)
            except tomli.TOMLDecodeError as exc:
                raise ConfigError(f"Invalid config file {path}: {exc}") from exc

    if overrides:
        for key, value in overrides.items():
            if isinstance(value, dict) and isinstance(data.get(key), dict):
                data[key] = {**data[key], **value}
            else:
                data[key] = value

    return Settings(**data)
