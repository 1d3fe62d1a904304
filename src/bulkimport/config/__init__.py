"""Application configuration helpers."""

from __future__ import annotations

from .env import require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .importing import ImportSettings, get_import_settings
from .mapping import KindMapping, MappingFile, load_mapping_file, read_mapping_file
from .omeka import OmekaSourceConfig, get_omeka_config
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_http_cache_path,
    get_storage_config,
)

__all__ = [
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "ImportSettings",
    "KindMapping",
    "MappingFile",
    "MissingConfigurationError",
    "OmekaSourceConfig",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "get_database_config",
    "get_http_cache_path",
    "get_import_settings",
    "get_omeka_config",
    "get_storage_config",
    "load_mapping_file",
    "read_mapping_file",
    "require_env_vars",
]
