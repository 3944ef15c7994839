"""TOML config loading, profiles, and workflow config validation."""

from __future__ import annotations

import logging
import re
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from stakehub.errors import ConfigError

# Default config search path (project root or cwd)
_CONFIG_DIR = Path(__file__).resolve().parent.parent.parent.parent / "config"
_CWD_CONFIG = Path.cwd() / "config"

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def _load_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base. Override values take precedence."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _find_config_dir(config_dir: Path | None = None) -> Path:
    if config_dir is not None:
        return config_dir
    if _CWD_CONFIG.exists():
        return _CWD_CONFIG
    return _CONFIG_DIR


def load_config(profile: str | None = None, config_dir: Path | None = None) -> dict[str, Any]:
    """Load merged config from default.toml and optional profile overlay."""
    config_dir = _find_config_dir(config_dir)
    default_path = config_dir / "default.toml"
    if not default_path.exists():
        return {}
    base = _load_toml(default_path)
    if profile:
        profile_path = config_dir / f"{profile}.toml"
        if not profile_path.exists():
            raise ConfigError(f"Config profile not found: {profile_path}")
        base = _deep_merge(base, _load_toml(profile_path))
    return base


def get_settings(profile: str | None = None, config_dir: Path | None = None) -> Settings:
    """Return Settings instance from merged config."""
    raw = load_config(profile, config_dir)
    return Settings.from_dict(raw)


def is_address(value: str) -> bool:
    return bool(_ADDRESS_RE.match(value or ""))


class LockTargetConfig(BaseModel):
    """One market the lock workflow drives."""

    address: str
    outcome: int = Field(..., ge=0, le=2, description="0=A, 1=B, 2=Draw")

    @field_validator("address")
    @classmethod
    def _check_address(cls, v: str) -> str:
        if not is_address(v):
            raise ValueError(f"not a 0x-prefixed 20-byte address: {v!r}")
        return v


class WorkflowConfig(BaseModel):
    """Validated lock workflow configuration. Built once at startup."""

    schedule: str
    api_url: str
    timeout_sec: float = Field(30.0, gt=0, le=600)
    executors: int = Field(1, ge=1, le=31)
    cache_read: bool = True
    cache_max_age_ms: int = Field(60_000, ge=0)
    lock_lead_sec: int | None = Field(None, ge=0)
    markets: list[LockTargetConfig] = Field(default_factory=list)

    @field_validator("schedule")
    @classmethod
    def _check_schedule(cls, v: str) -> str:
        from stakehub.execution.scheduler import build_trigger

        try:
            build_trigger(v)
        except ConfigError as e:
            raise ValueError(str(e)) from e
        return v

    @field_validator("api_url")
    @classmethod
    def _check_url(cls, v: str) -> str:
        if not re.match(r"^https?://[^\s/]+", v or ""):
            raise ValueError(f"not an http(s) URL: {v!r}")
        return v

    @classmethod
    def from_settings(cls, settings: Settings, *, require_markets: bool = True) -> WorkflowConfig:
        """Validate the [workflow] section. Raises ConfigError on anything invalid or missing."""
        raw = dict(settings.workflow)
        if not raw:
            raise ConfigError("Missing [workflow] config section")
        try:
            cfg = cls.model_validate(raw)
        except ValidationError as e:
            raise ConfigError("Invalid [workflow] config", detail=str(e)) from e
        if require_markets and not cfg.markets:
            raise ConfigError("No [[workflow.markets]] configured")
        return cfg


class Settings:
    """Application settings from TOML config."""

    def __init__(
        self,
        *,
        workflow: dict[str, Any] | None = None,
        ledger: dict[str, Any] | None = None,
        api: dict[str, Any] | None = None,
        logging: dict[str, Any] | None = None,
    ):
        self.workflow = workflow or {}
        self.ledger = ledger or {}
        self.api = api or {}
        self.logging = logging or {}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Settings:
        return cls(
            workflow=raw.get("workflow"),
            ledger=raw.get("ledger"),
            api=raw.get("api"),
            logging=raw.get("logging"),
        )

    # Convenience accessors with defaults
    @property
    def rpc_url(self) -> str:
        return self.ledger.get("rpc_url", "https://spicy-rpc.chiliz.com")

    @property
    def chain_id(self) -> int:
        return int(self.ledger.get("chain_id", 88882))

    @property
    def receipt_timeout_sec(self) -> float:
        return float(self.ledger.get("receipt_timeout_sec", 120))

    @property
    def api_host(self) -> str:
        return self.api.get("host", "127.0.0.1")

    @property
    def api_port(self) -> int:
        return int(self.api.get("port", 3000))

    @property
    def logging_level(self) -> str:
        return self.logging.get("level", "INFO").upper()

    @property
    def logging_format(self) -> str:
        return self.logging.get("format", "console")

    @property
    def logging_level_num(self) -> int:
        return getattr(logging, self.logging_level, logging.INFO)


def configure_logging(settings: Settings) -> None:
    """Configure structlog with settings. Call once at application entry."""
    import structlog

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.logging_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(settings.logging_level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
