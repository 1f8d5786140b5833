import os
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings as PydanticBaseSettings


ENV_FILE = os.getenv("ENV_FILE", ".env")


class BaseSettings(PydanticBaseSettings):
    """Base class for loading settings.
    The setting variables are loaded from environment settings first, then from the defined env_file.

    Different groups/contexts of settings are created using different classes, that can define an env_prefix which
    will be concatenated to the start of the variable name."""

    class Config:
        env_file = ENV_FILE
        extra = "ignore"


class ApplicationSettings(BaseSettings):
    """Settings related with the service/application in general."""

    """Health check file name."""
    health_check_file_name: str = "/tmp/waterlevel.healthcheck"

    """Health check file update period in seconds. The health check is performed by touching a file regularly.
    If the value is <= 0 no file update is done."""
    health_check_period: int = 30

    """Path to the YAML file selecting the queue and table backends."""
    config_path: str = str(Path(__file__).resolve().parent / "config" / "config.yaml")

    class Config(BaseSettings.Config):
        env_prefix = "APP_"


class HarnessSettings(BaseSettings):
    """Settings related with the harness run."""

    """Days of hourly samples to generate."""
    duration_days: float = 7

    """Queue (or topic) the samples are pushed onto."""
    queue_name: str = "water-level-queue"

    """Table the drained messages are persisted into. It is dropped and recreated on every run."""
    table_name: str = "test"

    """Seconds to wait for a message when draining the queue."""
    poll_timeout_s: float = 1.0

    """Maximum messages received per drain call."""
    receive_batch: int = 32

    class Config(BaseSettings.Config):
        env_prefix = "HARNESS_"


class StorageSettings(BaseSettings):
    """Connection details of the storage account holding the table."""
    connection_string: Optional[str] = None

    class Config(BaseSettings.Config):
        env_prefix = "AZURE_STORAGE_"


class LoggingSettings(BaseSettings):
    """Settings related with the logging of jobs"""
    level: str = "DEBUG"
    serialize: bool = False

    class Config(BaseSettings.Config):
        env_prefix = "LOG_"


app_settings = ApplicationSettings()
harness_settings = HarnessSettings()
storage_settings = StorageSettings()
logging_settings = LoggingSettings()
