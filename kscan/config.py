import logging
import os
import sys
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from kscan.infrastructure.plugin.config import PluginConfig


# =============================================================================
# Cluster Configuration
# =============================================================================


class KubeConfig(BaseModel):
    in_cluster: bool = False
    kubeconfig: str | None = None  # Defaults to $KUBECONFIG or ~/.kube/config
    context: str | None = None
    request_timeout: float = 30.0  # Seconds, applied to every API request


class ScanJobConfig(BaseModel):
    """Policy applied to every scan task regardless of plugin."""

    namespace: str = "kscan"  # Where scan jobs and their secrets run
    service_account: str = "kscan"
    timeout_seconds: int = 300  # Job activeDeadlineSeconds; 0 disables the deadline
    delete_scan_job: bool = True
    tolerations: list[dict[str, Any]] = []
    annotations: dict[str, str] = {}  # Added to the scan pod template
    resync_seconds: int = 300  # Watch window; every new window re-lists jobs
    orphan_grace_seconds: int = 300  # Minimum age before an unowned secret is reconciled

    @property
    def active_deadline_seconds(self) -> int | None:
        return self.timeout_seconds if self.timeout_seconds > 0 else None


# =============================================================================
# Application Configuration
# =============================================================================


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """Load settings from YAML file specified by KSCAN_CONFIG_FILE env var."""

    def get_field_value(
        self, field: Any, field_name: str
    ) -> tuple[Any, str, bool]:
        """Get the value for a field from the YAML config."""
        yaml_data = self._load_yaml_config()
        field_value = yaml_data.get(field_name)
        return field_value, field_name, False

    def __call__(self) -> dict[str, Any]:
        """Return all settings from YAML file."""
        return self._load_yaml_config()

    def _load_yaml_config(self) -> dict[str, Any]:
        """Load config from YAML file if specified."""
        config_file = os.environ.get("KSCAN_CONFIG_FILE")
        if config_file:
            path = Path(config_file)
            if path.exists():
                return yaml.safe_load(path.read_text()) or {}
        return {}


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"

    @property
    def file(self) -> str | None:
        """Get log file path from KSCAN_LOG_FILE env var."""
        return os.environ.get("KSCAN_LOG_FILE")


class Config(BaseSettings):
    kube: KubeConfig = KubeConfig()
    scan: ScanJobConfig = ScanJobConfig()
    plugin: PluginConfig = PluginConfig()
    logging: LoggingConfig = LoggingConfig()

    class Config:
        env_prefix = "KSCAN_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_nested_delimiter = "__"  # Allows KSCAN_SCAN__NAMESPACE override

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
        4. yaml_settings - KSCAN_CONFIG_FILE yaml
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

    Should be called early in application startup so all loggers pick up
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
        handler: logging.Handler = logging.FileHandler(log_path)
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(config.level)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("kubernetes").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logging.debug("Logging configured: level=%s, file=%s", config.level, config.file)
