"""Configuration module for stratbook.

Provides centralized configuration management using:
- Environment variables for secrets
- YAML files for deployment overrides
- Pydantic for validation
"""

from config.settings import (
    Settings,
    get_settings,
    DatabaseConfig,
    StorageConfig,
    LoggingConfig,
    ServerConfig,
)

__all__ = [
    "Settings",
    "get_settings",
    "DatabaseConfig",
    "StorageConfig",
    "LoggingConfig",
    "ServerConfig",
]
