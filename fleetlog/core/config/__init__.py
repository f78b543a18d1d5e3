"""Configuration package for FleetLog.

This package provides Pydantic configuration models and loading utilities.
"""

from fleetlog.core.config.loader import (
    check_unexpanded_vars,
    expand_env_vars,
    expand_env_vars_recursive,
    load_config,
)
from fleetlog.core.config.models import (
    Config,
    DatabaseConfig,
    KilometerConfig,
    LoggingConfig,
    TelegramConfig,
    TenantConfig,
)

__all__ = [
    # Models
    "Config",
    "DatabaseConfig",
    "KilometerConfig",
    "LoggingConfig",
    "TelegramConfig",
    "TenantConfig",
    # Loaders
    "check_unexpanded_vars",
    "expand_env_vars",
    "expand_env_vars_recursive",
    "load_config",
]
