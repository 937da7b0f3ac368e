"""Configuration management for FX Forecaster."""
import logging
import os
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from fx_forecaster.utils.errors import ConfigurationError
from fx_forecaster.utils.logging import setup_logging
from fx_forecaster.utils.paths import locate_config_file, resolve_project_path

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "FX_FORECASTER_CONFIG"


class Config:
    """Application configuration."""

    REQUIRED_SECTIONS = ('app', 'forecast')

    def __init__(self, config_path: Optional[str] = None, configure_logging: bool = True):
        """
        Initialize configuration.

        Args:
            config_path: Path to YAML configuration file; defaults to
                $FX_FORECASTER_CONFIG, then config.yaml
            configure_logging: Apply the ``logging`` section on load
        """
        self.config_path = locate_config_file(config_path, CONFIG_ENV_VAR)
        self._config: Dict[str, Any] = {}
        self._load(configure_logging)

    def _load(self, configure_logging: bool) -> None:
        """Load configuration from YAML and environment."""
        load_dotenv()

        if not self.config_path.exists():
            raise ConfigurationError(f"Config file not found: {self.config_path}")

        with open(self.config_path, 'r') as f:
            try:
                self._config = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {self.config_path}: {e}") from e

        if not self._config:
            raise ConfigurationError(f"Empty configuration file: {self.config_path}")
        if not isinstance(self._config, dict):
            raise ConfigurationError(f"Top-level YAML must be a mapping: {self.config_path}")

        self._validate()

        if configure_logging:
            log_config = self._config.get('logging', {}) or {}
            log_file = log_config.get('file')
            setup_logging(
                level=os.getenv('LOG_LEVEL', log_config.get('level', 'INFO')),
                log_file=str(resolve_project_path(log_file)) if log_file else None,
                format_type=log_config.get('format', 'text'),
                enabled=log_config.get('enabled', True)
            )

        logger.info(f"Configuration loaded from {self.config_path}")

    def _validate(self) -> None:
        """Validate required configuration sections."""
        for section in self.REQUIRED_SECTIONS:
            if section not in self._config:
                raise ConfigurationError(f"Missing required config section: {section}")
            if not isinstance(self._config[section], dict):
                raise ConfigurationError(f"Config section '{section}' must be a mapping")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-separated key.

        Args:
            key: Dot-separated key (e.g., "api.exchange_rate_host.base_url")
            default: Default value if key not found

        Returns:
            Configuration value
        """
        value: Any = self._config
        for k in key.split('.'):
            if not isinstance(value, dict):
                return default
            value = value.get(k)
            if value is None:
                return default
        return value

    def section(self, name: str) -> Dict[str, Any]:
        """Return a top-level section as a dict (empty when absent)."""
        return dict(self._config.get(name) or {})

    def require_env(self, key: str) -> str:
        """Get required environment variable or raise error."""
        value = os.getenv(key)
        if value is None:
            raise ConfigurationError(f"Required environment variable not set: {key}")
        return value

    @property
    def app_name(self) -> str:
        return self.get('app.name', 'FX Forecaster')

    @property
    def app_version(self) -> str:
        return self.get('app.version', '0.1.0')

    @property
    def debug(self) -> bool:
        return bool(self.get('app.debug', False))


_config: Optional[Config] = None


def load_config(config_path: Optional[str] = None, reload: bool = False) -> Config:
    """Load and return the global configuration instance."""
    global _config
    if _config is None or reload:
        _config = Config(config_path)
    return _config


def get_config() -> Config:
    """Get global configuration instance."""
    if _config is None:
        raise ConfigurationError("Configuration not loaded. Call load_config() first.")
    return _config


def reset_config() -> None:
    """Forget the global configuration (used by tests and the CLI --config flag)."""
    global _config
    _config = None
