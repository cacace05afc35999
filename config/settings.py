"""Pydantic settings for configuration management."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import yaml


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO", description="Log level")
    format: Literal["json", "text"] = Field(
        default="json",
        description="Log format",
    )
    file: Path | None = Field(
        default=Path("logs/app.log"),
        description="Log file path (None for stdout only)",
    )
    rotate_size_mb: int = Field(
        default=10,
        description="Log file rotation size in MB",
    )
    retain_count: int = Field(
        default=5,
        description="Number of rotated log files to retain",
    )


class DatabaseConfig(BaseSettings):
    """Relational database configuration.

    The database counts as configured when either an explicit ``dsn`` or a
    ``host`` is set. Otherwise the application serves every entity from the
    in-memory backend, or refuses every operation when
    ``in_memory_fallback`` is disabled.
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    dsn: str = Field(
        default="",
        description="Full SQLAlchemy URL; takes precedence over host/port/name",
    )
    host: str = Field(default="", description="Database host")
    port: int = Field(default=5432, description="Database port")
    name: str = Field(default="stratbook", description="Database name")
    user: str = Field(default="stratbook", description="Database user")
    password: str = Field(default="", description="Database password")
    pool_size: int = Field(default=5, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Max pool overflow connections")
    pool_recycle: int = Field(default=3600, description="Recycle connections after N seconds (avoids stale connections)")
    pool_timeout: int = Field(default=30, description="Seconds to wait for a connection from pool before timeout")
    echo: bool = Field(default=False, description="Echo SQL statements for debugging")
    in_memory_fallback: bool = Field(
        default=True,
        description="Serve all entities from process memory when no database is configured",
    )

    @property
    def is_configured(self) -> bool:
        """True when a database URL or host has been provided."""
        return bool(self.dsn or self.host)

    @property
    def url(self) -> str:
        """Build the SQLAlchemy connection URL."""
        if self.dsn:
            return self.dsn
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.name}"


class StorageConfig(BaseSettings):
    """Object storage configuration for uploaded images."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    backend: Literal["memory", "local"] = Field(
        default="local",
        description="Storage backend: 'memory' for in-process, 'local' for files on disk",
    )
    root_dir: Path = Field(
        default=Path("data/storage"),
        description="Root directory for the local backend (one sub-directory per bucket)",
    )
    public_base_url: str = Field(
        default="http://localhost:8730/storage",
        description="Base URL under which stored objects are publicly served",
    )
    strategy_bucket: str = Field(default="strategy-images", description="Bucket for strategy images")
    thumbnail_bucket: str = Field(default="map-thumbnails", description="Bucket for map thumbnails")
    max_upload_bytes: int = Field(
        default=5 * 1024 * 1024,
        description="Largest accepted image upload in bytes",
    )
    allowed_mime_prefix: str = Field(
        default="image/",
        description="Uploads must declare a content type starting with this prefix",
    )

    @field_validator("public_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the base URL so paths can be appended with a single slash."""
        return v.rstrip("/")

    @property
    def buckets(self) -> tuple[str, str]:
        return (self.thumbnail_bucket, self.strategy_bucket)


class ServerConfig(BaseSettings):
    """Backend server configuration."""

    model_config = SettingsConfigDict(env_prefix="SERVER_")

    port: int = Field(default=8730, description="Backend server port")
    host: str = Field(default="0.0.0.0", description="Backend server host")
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"],
        description="Origins allowed by the CORS middleware",
    )


class Settings(BaseSettings):
    """Main settings class combining all configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: Literal["development", "production"] = Field(
        default="development",
        description="Environment type",
    )

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @model_validator(mode="after")
    def validate_production_safety(self) -> "Settings":
        """Enforce safety invariants for production environments."""
        if self.environment == "production":
            if not self.database.is_configured:
                raise ValueError(
                    "A database (DB_DSN or DB_HOST) must be configured in production"
                )
            if self.storage.backend == "memory":
                raise ValueError(
                    "STORAGE_BACKEND=memory must not be used in production"
                )
        return self

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Settings instance
        """
        path = Path(path)
        if not path.exists():
            return cls()

        with open(path) as f:
            config_dict = yaml.safe_load(f) or {}

        return cls(**config_dict)

    def to_yaml(self, path: str | Path) -> None:
        """Save settings to YAML file.

        Args:
            path: Path to save configuration
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        # Convert to dict, excluding secrets
        config_dict = self.model_dump(
            mode="json",
            exclude={"database": {"password", "dsn"}},
        )

        with open(path, "w") as f:
            yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings instance
    """
    # Try to load from config file first
    config_path = Path("config/stratbook.yaml")
    if config_path.exists():
        return Settings.from_yaml(config_path)

    return Settings()
