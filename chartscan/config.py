import logging
import os
import sys
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource


# =============================================================================
# Scan Configuration
# =============================================================================


class ScanConfig(BaseModel):
    """Image discovery and inspection settings (nested in Config)."""

    concurrency: int = Field(default=5, ge=1)  # Simultaneous registry inspections
    inspect_timeout: float = Field(default=120.0, gt=0)  # Seconds per image inspection
    document_suffixes: list[str] = [".yaml", ".yml"]  # Archive members treated as YAML


class ArchiveConfig(BaseModel):
    """Chart download settings (nested in Config)."""

    fetch_timeout: float = Field(default=60.0, gt=0)  # Seconds for the whole download
    max_bytes: int = Field(default=100 * 1024 * 1024, gt=0)  # Refuse larger archives
    max_unpacked_bytes: int = Field(default=256 * 1024 * 1024, gt=0)  # Cap on YAML read from one archive


class RegistryCredential(BaseModel):
    """Credentials oras logs in with for one registry."""

    username: str
    password: str


class RegistryConfig(BaseModel):
    """Container registry client settings (nested in Config)."""

    platform_os: str = "linux"  # Platform picked from multi-arch indexes
    platform_architecture: str = "amd64"
    insecure_registries: list[str] = []  # Hosts contacted over plain HTTP
    credentials: dict[str, RegistryCredential] = {}  # Keyed by registry host


# =============================================================================
# Application Configuration
# =============================================================================


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """Load settings from YAML file specified by CHARTSCAN_CONFIG_FILE env var."""

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Get the value for a field from the YAML config."""
        yaml_data = self._load_yaml_config()
        field_value = yaml_data.get(field_name)
        return field_value, field_name, False

    def __call__(self) -> dict[str, Any]:
        """Return all settings from YAML file."""
        return self._load_yaml_config()

    def _load_yaml_config(self) -> dict[str, Any]:
        """Load config from YAML file if specified."""
        config_file = os.environ.get("CHARTSCAN_CONFIG_FILE")
        if config_file:
            path = Path(config_file)
            if path.exists():
                return yaml.safe_load(path.read_text()) or {}
        return {}


class Server(BaseModel):
    """Server configuration (nested in Config, uses env_nested_delimiter)."""

    name: str = "chartscan"
    version: str = "0.1.0"
    description: str = "Inventory and size the container images referenced by a chart"


class LoggingConfig(BaseModel):
    """Logging configuration (nested in Config, uses env_nested_delimiter)."""

    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"

    @property
    def file(self) -> str | None:
        """Get log file path from CHARTSCAN_LOG_FILE env var."""
        return os.environ.get("CHARTSCAN_LOG_FILE")


class Config(BaseSettings):
    server: Server = Server()
    logging: LoggingConfig = LoggingConfig()
    scan: ScanConfig = ScanConfig()
    archive: ArchiveConfig = ArchiveConfig()
    registry: RegistryConfig = RegistryConfig()

    model_config = {
        "env_prefix": "CHARTSCAN_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",  # Allows CHARTSCAN_SCAN__CONCURRENCY override
        "extra": "ignore",
    }

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings sources to include YAML config.

        Priority (highest to lowest):
        1. init_settings - values passed to Config()
        2. env_settings - environment variables
        3. dotenv_settings - .env file
        4. yaml_settings - CHARTSCAN_CONFIG_FILE yaml
        5. file_secret_settings - secrets from files
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


def configure_logging(config: LoggingConfig) -> None:
    """Configure Python logging based on config.

    Should be called early in application startup so that all loggers pick up
    the configuration.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(config.level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(config.format, datefmt=config.date_format)

    if config.file:
        log_path = Path(config.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(config.level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(config.level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("oras").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logging.debug("Logging configured: level=%s, file=%s", config.level, config.file)
