"""Server configuration via environment variables."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

DEFAULT_EXTRA_PATHS = ("/opt/homebrew/bin", "/usr/local/bin")


def _default_export_dir() -> str:
    return str(Path.home() / ".local" / "share" / "pattern-analysis-mcp" / "exports")


def _parse_bool(raw: str, default: bool) -> bool:
    value = raw.strip().lower()
    if not value:
        return default
    return value in ("1", "true", "yes", "on")


def _parse_paths(raw: str | None) -> list[str]:
    """Split an ``os.pathsep``-separated list, falling back to the defaults when unset."""
    if raw is None:
        return list(DEFAULT_EXTRA_PATHS)
    return [p.strip() for p in raw.split(os.pathsep) if p.strip()]


def _resolve_tracing_enabled(flag_value: str, tracking_uri: str) -> bool:
    """Derive tracing_enabled from env vars.

    - ``FABRIC_TRACING_ENABLED=false`` → always disabled (explicit opt-out).
    - Otherwise enabled when ``MLFLOW_TRACKING_URI`` is non-empty.
    """
    if flag_value.lower() == "false":
        return False
    return bool(tracking_uri)


class ServerConfig(BaseModel):
    """Runtime configuration resolved from environment.

    ``fabric_path`` may be a bare command name; it is resolved against the
    augmented search path at spawn time, not at startup.
    """

    fabric_path: str = Field(default="fabric")
    max_input_length: int = Field(default=15000)
    timeout: int = Field(default=60)
    export_dir: str = Field(default_factory=_default_export_dir)
    extra_paths: list[str] = Field(default_factory=lambda: list(DEFAULT_EXTRA_PATHS))
    auto_export: bool = Field(default=True)
    tracing_enabled: bool = Field(default=False)
    mlflow_tracking_uri: str = Field(default="")
    mlflow_experiment_name: str = Field(default="pattern-analysis-mcp")

    @field_validator("max_input_length", "timeout")
    @classmethod
    def validate_positive_ints(cls, value: int) -> int:
        if value < 1:
            raise ValueError("Configuration values must be >= 1")
        return value

    @field_validator("fabric_path")
    @classmethod
    def validate_fabric_path(cls, value: str) -> str:
        v = value.strip()
        if not v:
            raise ValueError("fabric_path must not be empty")
        return v

    @property
    def timeout_millis(self) -> int:
        return self.timeout * 1000

    @property
    def resolved_export_dir(self) -> Path:
        """Return the export directory with ``~`` expanded."""
        return Path(self.export_dir).expanduser()

    @classmethod
    def from_env(cls) -> ServerConfig:
        """Build config from environment variables."""
        return cls(
            fabric_path=os.getenv("FABRIC_PATH", "fabric"),
            max_input_length=int(os.getenv("FABRIC_MAX_INPUT_LENGTH", "15000")),
            timeout=int(os.getenv("FABRIC_TIMEOUT", "60")),
            export_dir=os.getenv("FABRIC_EXPORT_DIR", "") or _default_export_dir(),
            extra_paths=_parse_paths(os.getenv("FABRIC_EXTRA_PATHS")),
            auto_export=_parse_bool(os.getenv("FABRIC_AUTO_EXPORT", ""), True),
            tracing_enabled=_resolve_tracing_enabled(
                os.getenv("FABRIC_TRACING_ENABLED", ""),
                os.getenv("MLFLOW_TRACKING_URI", ""),
            ),
            mlflow_tracking_uri=os.getenv("MLFLOW_TRACKING_URI", ""),
            mlflow_experiment_name=os.getenv("MLFLOW_EXPERIMENT_NAME", "pattern-analysis-mcp"),
        )


# Singleton — initialised once on first access.
_config: ServerConfig | None = None


def get_config() -> ServerConfig:
    """Return the global config singleton, creating it on first access.

    Loads ``~/.config/pattern-analysis-mcp/.env`` before reading env vars.
    Process environment always takes precedence over the config file.
    """
    global _config
    if _config is None:
        import logging

        from .dotenv import load_dotenv

        injected = load_dotenv()
        if injected:
            logger = logging.getLogger(__name__)
            logger.info(
                "Loaded %d var(s) from config: %s",
                len(injected),
                ", ".join(injected.keys()),
            )
        _config = ServerConfig.from_env()
    return _config


def update_config(**overrides: object) -> ServerConfig:
    """Patch the live config (used by the ``infra_configure`` tool)."""
    global _config
    cfg = get_config()
    data = cfg.model_dump()
    data.update({k: v for k, v in overrides.items() if v is not None})
    _config = ServerConfig(**data)
    return _config
