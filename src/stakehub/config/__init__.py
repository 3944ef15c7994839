"""Configuration: TOML profiles, validated workflow config, logging setup."""

from stakehub.config.settings import (
    LockTargetConfig,
    Settings,
    WorkflowConfig,
    configure_logging,
    get_settings,
    load_config,
)

__all__ = [
    "Settings",
    "WorkflowConfig",
    "LockTargetConfig",
    "get_settings",
    "load_config",
    "configure_logging",
]
