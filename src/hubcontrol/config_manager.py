"""
Configuration management for hubcontrol.

Loads the application configuration, including per-hub port layouts, once at
startup. The loaded configuration is read-only for the rest of the process.
"""

from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from .models import AppConfig, HubConfig

logger = logging.getLogger(__name__)

# Use absolute path based on project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DEFAULT_CONFIG_PATH = _PROJECT_ROOT / "config" / "hubcontrol.yaml"

CONFIG_SEARCH_PATHS = [
    DEFAULT_CONFIG_PATH,
    Path("config.yaml"),
    Path("/etc/hubcontrol/config.yaml"),
]

CONFIG_ENV_VAR = "HUBCONTROL_CONFIG"


class ConfigManager:
    """Loads application configuration from the first usable file."""

    def __init__(self, config_path: Optional[Path] = None):
        if config_path is not None:
            self.search_paths = [Path(config_path)]
        else:
            self.search_paths = list(CONFIG_SEARCH_PATHS)
        self.config_path: Optional[Path] = None
        self._config: Optional[AppConfig] = None

    @property
    def config(self) -> AppConfig:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            self.load()
        return self._config  # type: ignore

    def load(self) -> AppConfig:
        """Load configuration from the first file that parses and validates.

        Files that can't be read or don't validate are skipped with a warning.
        """
        for path in self.search_paths:
            if not path.exists():
                continue

            try:
                with open(path) as f:
                    data = yaml.safe_load(f) or {}
                self._config = AppConfig.model_validate(data)
            except (OSError, yaml.YAMLError, ValidationError) as e:
                logger.warning(f"Failed to load config file {path}: {e}")
                continue

            self.config_path = path
            logger.info(f"Loaded configuration from {path} ({len(self._config.hubs)} hubs)")
            return self._config

        logger.info("No config file found, using defaults")
        self.config_path = None
        self._config = AppConfig()
        return self._config

    def get_hub_config(self, vendor_id: str, product_id: str) -> Optional[HubConfig]:
        """Get configuration for a hub model if configured."""
        return self.config.get_hub_config(vendor_id, product_id)

    def get_hub_configs(self) -> list[HubConfig]:
        """Get all configured hubs."""
        return list(self.config.hubs)


# Global config manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager(config_path: Optional[Path] = None) -> ConfigManager:
    """Get or create the global config manager.

    Without an explicit path, the HUBCONTROL_CONFIG environment variable is
    honoured before the default search paths.
    """
    global _config_manager
    if _config_manager is None:
        if config_path is None and os.environ.get(CONFIG_ENV_VAR):
            config_path = Path(os.environ[CONFIG_ENV_VAR])
        _config_manager = ConfigManager(config_path)
    return _config_manager


def reset_config_manager() -> None:
    """Forget the global config manager so the next call reloads."""
    global _config_manager
    _config_manager = None
