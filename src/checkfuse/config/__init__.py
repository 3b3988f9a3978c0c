"""Application configuration helpers."""

from __future__ import annotations

from .env import env_float, optional_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .fusion_service import FusionServiceConfig, get_fusion_service_config
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "FusionServiceConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "env_float",
    "get_database_config",
    "get_fusion_service_config",
    "get_storage_config",
    "optional_env_var",
    "require_env_vars",
]
