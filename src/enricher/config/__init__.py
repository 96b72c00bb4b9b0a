"""Application configuration helpers."""

from __future__ import annotations

from .env import (
    env_flag,
    env_float,
    env_int,
    env_list,
    env_str,
    require_env_var,
    require_env_vars,
)
from .errors import ConfigurationError, MissingConfigurationError
from .logging import configure_logging, resolve_log_level
from .pipeline import PipelineConfig, get_pipeline_config
from .resilience import (
    CircuitBreakerPolicy,
    FetchConfig,
    RateLimit,
    ResilienceConfig,
    RetryPolicy,
    get_resilience_config,
)
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config
from .trust import get_trust_policy

__all__ = [
    "CircuitBreakerPolicy",
    "ConfigurationError",
    "DatabaseConfig",
    "FetchConfig",
    "MissingConfigurationError",
    "PipelineConfig",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "env_flag",
    "env_float",
    "env_int",
    "env_list",
    "env_str",
    "get_database_config",
    "get_pipeline_config",
    "get_resilience_config",
    "get_storage_config",
    "get_trust_policy",
    "require_env_var",
    "require_env_vars",
    "resolve_log_level",
]
