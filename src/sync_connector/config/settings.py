"""Application configuration settings."""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings


class ServerSettings(BaseSettings):
    """HTTP transport configuration."""

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=6161)
    shared_secret: Optional[str] = Field(default=None)
    secret_query_param: str = Field(default="secret")

    class Config:
        env_prefix = "CONNECTOR_"


class DestinationSettings(BaseSettings):
    """Which backend this connector writes to."""

    kind: str = Field(default="memory")
    registry_path: Optional[str] = Field(default=None)

    class Config:
        env_prefix = "DESTINATION_"


class DatabaseSettings(BaseSettings):
    """SQL destination configuration."""

    url: str = Field(default="postgresql+psycopg2://postgres@localhost:5432/postgres")
    pool_size: int = Field(default=5)

    class Config:
        env_prefix = "DB_"


class CannySettings(BaseSettings):
    """Canny REST API configuration."""

    api_key: str = Field(default="")
    base_url: str = Field(default="https://canny.io/api/v1")
    request_timeout_seconds: float = Field(default=30.0)

    class Config:
        env_prefix = "CANNY_"


class SyncSettings(BaseSettings):
    """Batch execution limits."""

    max_concurrent_writes: int = Field(default=16)
    write_timeout_seconds: float = Field(default=60.0)
    maximum_batch_size: Optional[int] = Field(default=None)
    maximum_records_per_second: Optional[int] = Field(default=None)
    maximum_parallel_batches: Optional[int] = Field(default=None)

    class Config:
        env_prefix = "SYNC_"


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field(default="INFO")
    format: str = Field(default="json")
    file_path: Optional[str] = Field(default=None)

    class Config:
        env_prefix = "LOG_"


class AppSettings(BaseSettings):
    """Main application settings."""

    name: str = Field(default="Destination Connector")
    version: str = Field(default="1.0.0")
    environment: str = Field(default="development")

    # Sub-settings
    server: ServerSettings = Field(default_factory=ServerSettings)
    destination: DestinationSettings = Field(default_factory=DestinationSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    canny: CannySettings = Field(default_factory=CannySettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    class Config:
        env_prefix = "APP_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


# Global settings instance
_settings: Optional[AppSettings] = None


def get_settings() -> AppSettings:
    """Get application settings."""
    global _settings
    if _settings is None:
        _settings = AppSettings()
    return _settings


def reload_settings() -> AppSettings:
    """Re-read settings from the process environment."""
    global _settings
    _settings = AppSettings()
    return _settings
