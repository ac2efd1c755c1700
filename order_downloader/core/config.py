"""
Configuration loader for the order downloader.
Non-secret settings come from config.yaml, secrets from the environment (.env supported).
"""

import yaml
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional
import logging

from dotenv import find_dotenv, load_dotenv

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

AUTH_TOKEN_VAR = "AUTH_TOKEN"
API_KEY_VAR = "API_KEY"

DEFAULTS = {
    'general': {
        'database': 'orders.sqlite',
        'log_file': None,
        'log_level': 'INFO',
    },
    'api': {
        'base_url': 'https://api.pcexpress.ca',
        'referrer': 'https://www.realcanadiansuperstore.ca/',
        'timeout': None,
    },
    'products': {
        'store_id': 1560,
        'banner': 'superstore',
        'pickup_type': 'STORE',
        'lang': 'en',
    },
}


@dataclass
class Credentials:
    """Secrets required by the remote API."""
    bearer_token: str = field(repr=False)
    api_key: str = field(repr=False)


class Config:
    """Layered configuration: built-in defaults overridden by a YAML file."""

    def __init__(self, config_path: Optional[str] = None, base_dir: Optional[Path] = None):
        self._base_dir = Path(base_dir) if base_dir else Path.cwd()
        self._data: dict = {}
        self._load(config_path)

    def _load(self, config_path: Optional[str] = None) -> None:
        """Load configuration from YAML file."""
        if config_path:
            path = Path(config_path)
            if not path.exists():
                raise ConfigError(f"Configuration file not found: {path}")
        else:
            path = self._base_dir / "config.yaml"
            if not path.exists():
                logger.warning(f"No config file at {path}, using defaults")
                return

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Could not read configuration file {path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration root must be a mapping: {path}")

        self._data = data
        self._base_dir = path.resolve().parent
        logger.info(f"Configuration loaded from {path}")

    def get(self, *keys: str, default: Any = None) -> Any:
        """
        Get a nested config value, falling back to the built-in defaults.
        Example: config.get('api', 'base_url') -> config['api']['base_url']
        """
        for source in (self._data, DEFAULTS):
            value = source
            for key in keys:
                if isinstance(value, dict) and key in value:
                    value = value[key]
                else:
                    break
            else:
                if value is not None:
                    return value
        return default

    def get_str(self, *keys: str, default: Optional[str] = None) -> Optional[str]:
        """Get string value."""
        value = self.get(*keys, default=default)
        return str(value) if value is not None else default

    def get_int(self, *keys: str, default: int = 0) -> int:
        """Get integer value."""
        value = self.get(*keys, default=default)
        try:
            return int(value) if value is not None else default
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Config value {'.'.join(keys)} is not an integer: {value!r}") from e

    def get_float(self, *keys: str, default: Optional[float] = None) -> Optional[float]:
        """Get float value."""
        value = self.get(*keys, default=default)
        try:
            return float(value) if value is not None else default
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Config value {'.'.join(keys)} is not a number: {value!r}") from e

    @property
    def base_dir(self) -> Path:
        """Directory relative paths are resolved against."""
        return self._base_dir

    @property
    def db_path(self) -> Path:
        """Get database file path."""
        path = Path(self.get_str('general', 'database'))
        return path if path.is_absolute() else self._base_dir / path

    @property
    def log_path(self) -> Optional[Path]:
        """Get log file path, None for console-only logging."""
        log_name = self.get_str('general', 'log_file')
        if not log_name:
            return None
        path = Path(log_name)
        return path if path.is_absolute() else self._base_dir / path

    @property
    def log_level(self) -> str:
        return self.get_str('general', 'log_level', default='INFO')


_config_instance: Optional[Config] = None


def get_config(config_path: Optional[str] = None) -> Config:
    """Get the global config instance."""
    global _config_instance
    if _config_instance is None:
        _config_instance = Config(config_path)
    return _config_instance


def reset_config() -> None:
    """Drop the cached config instance."""
    global _config_instance
    _config_instance = None


def load_credentials() -> Credentials:
    """
    Resolve the API secrets from the environment.
    A .env file found by walking up from the working directory is loaded first;
    variables already set in the environment win.

    Raises:
        ConfigError: if any secret is missing or blank
    """
    dotenv_path = find_dotenv(usecwd=True)
    if dotenv_path:
        load_dotenv(dotenv_path)
        logger.debug(f"Loaded environment from {dotenv_path}")

    values = {name: (os.getenv(name) or '').strip() for name in (AUTH_TOKEN_VAR, API_KEY_VAR)}
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")

    return Credentials(bearer_token=values[AUTH_TOKEN_VAR], api_key=values[API_KEY_VAR])
