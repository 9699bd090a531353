"""Application configuration helpers."""

from __future__ import annotations

from .env import env_flag, env_int, require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config
from .sync import SyncConfig, get_sync_config
from .wordpress import DEFAULT_CATEGORY_SLUGS, WordPressConfig, get_wordpress_config

__all__ = [
    "DEFAULT_CATEGORY_SLUGS",
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "SyncConfig",
    "WordPressConfig",
    "configure_logging",
    "env_flag",
    "env_int",
    "get_database_config",
    "get_storage_config",
    "get_sync_config",
    "get_wordpress_config",
    "require_env_var",
    "require_env_vars",
]
