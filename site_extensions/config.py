"""Configuration management for site extensions.

Loads configuration from:
1. siteext.toml (defaults)
2. Environment variables (overrides)
"""

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

CONFIG_FILE_NAME = "siteext.toml"


@dataclass
class CatalogConfig:
    """Remote catalog configuration."""

    url: str = "https://siteextensions.azurewebsites.net/api/v2"
    timeout: float = 30.0


@dataclass
class StoreConfig:
    """Local installation root configuration."""

    # Directory holding one subdirectory per installed extension
    root: str = "~/site/SiteExtensions"

    @property
    def root_path(self) -> Path:
        return Path(self.root).expanduser()


@dataclass
class RetryConfig:
    """Retry settings for filesystem mutations during install/uninstall."""

    max_attempts: int = 5
    delay_seconds: float = 0.25


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"


@dataclass
class Config:
    """Main configuration container."""

    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        return cls(
            catalog=CatalogConfig(**data.get("catalog", {})),
            store=StoreConfig(**data.get("store", {})),
            retry=RetryConfig(**data.get("retry", {})),
            logging=LoggingConfig(**data.get("logging", {})),
        )

    def to_dict(self) -> dict[str, dict[str, Any]]:
        """Flatten settings by section (for display)."""
        return {
            "catalog": vars(self.catalog).copy(),
            "store": vars(self.store).copy(),
            "retry": vars(self.retry).copy(),
            "logging": vars(self.logging).copy(),
        }


def find_config_file() -> Path | None:
    """Find siteext.toml in current or parent directories.

    Returns:
        Path to siteext.toml or None if not found.
    """
    current = Path.cwd()

    for directory in [current, *current.parents]:
        config_path = directory / CONFIG_FILE_NAME
        if config_path.exists():
            return config_path

    return None


def load_config(config_path: Path | str | None = None) -> Config:
    """Load configuration from file and environment.

    Args:
        config_path: Optional explicit path to siteext.toml

    Returns:
        Config object with merged settings.
    """
    config_data: dict[str, Any] = {}

    if config_path is None:
        config_path = find_config_file()

    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            with open(path, "rb") as f:
                config_data = tomllib.load(f)

    env_overrides = {
        "catalog": {
            "url": os.getenv("SITEEXT_CATALOG_URL"),
            "timeout": _float_or_none(os.getenv("SITEEXT_CATALOG_TIMEOUT")),
        },
        "store": {
            "root": os.getenv("SITEEXT_ROOT"),
        },
        "retry": {
            "max_attempts": _int_or_none(os.getenv("SITEEXT_RETRY_ATTEMPTS")),
        },
        "logging": {
            "level": os.getenv("LOG_LEVEL"),
        },
    }

    # Merge env overrides (only non-None values)
    for section, values in env_overrides.items():
        if section not in config_data:
            config_data[section] = {}
        for key, value in values.items():
            if value is not None:
                config_data[section][key] = value

    return Config.from_dict(config_data)


def _int_or_none(value: str | None) -> int | None:
    """Convert string to int, or return None."""
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _float_or_none(value: str | None) -> float | None:
    """Convert string to float, or return None."""
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


# Global config instance (lazy loaded)
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance.

    Returns:
        Config object (loaded once, cached).
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Force reload of configuration.

    Returns:
        Freshly loaded Config object.
    """
    global _config
    _config = load_config()
    return _config
