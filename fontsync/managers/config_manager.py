"""
FontSync - Configuration Manager

Handles loading and saving configuration from/to fontsync.json. Values given
on the command line override the file for the current run only.

Author: FontSync Project
"""

import json
import logging
from pathlib import Path
from typing import Optional, Dict, Any

# Configure logging
logger = logging.getLogger(__name__)


# Default configuration values
DEFAULT_CONFIG = {
    # Server
    "host": "127.0.0.1",
    "port": 8080,
    "font_dir": "./fonts",
    "watch_mode": "poll",  # "poll" (fixed-interval rescans) or "events" (filesystem notifications)
    "rescan_interval_seconds": 5.0,
    "watch_debounce_ms": 500,
    "event_buffer_size": 256,  # Per-client notification queue length
    "heartbeat_interval_seconds": 30.0,

    # Client
    "server_url": "http://127.0.0.1:8080",
    "local_dir": None,  # None means the user's font folder (see get_user_font_folder)
    "request_timeout_seconds": 30.0,
    "hash_mismatch_retries": 1,
    "sync_retries": 3,
    "strict": False,  # Treat any per-file failure as a failed sync
    "refresh_font_cache": False,  # Run fc-cache after a pass that changed files
    "debounce_seconds": 1.0,
    "debounce_max_seconds": 10.0,
    "reconnect_initial_delay_seconds": 1.0,
    "reconnect_max_delay_seconds": 60.0,
    "reconnect_max_attempts": None,  # None means retry until cancelled

    # Shared
    "recursive": True,
    "font_extensions": None,  # None means the built-in font allow-list
    "log_level": "INFO",
    "log_dir": "logs",
    "log_retention_days": 30
}

DEFAULT_CONFIG_FILE = "fontsync.json"


class ConfigManager:
    """
    Manages FontSync configuration.

    Responsibilities:
    - Load/save fontsync.json (current directory unless a path is given)
    - Merge defaults for missing keys
    - Apply command-line overrides without persisting them
    """

    def __init__(self, config_file: Optional[Path] = None):
        """
        Initialize configuration manager.

        Args:
            config_file: Path to the JSON config file, defaults to ./fontsync.json
        """
        self.config_file = Path(config_file) if config_file else Path.cwd() / DEFAULT_CONFIG_FILE
        self.config: Dict[str, Any] = DEFAULT_CONFIG.copy()
        self.overrides: Dict[str, Any] = {}

    def load_config(self, create_if_missing: bool = True) -> Dict[str, Any]:
        """
        Load configuration from the config file.
        Creates a default config file if it doesn't exist.

        Returns:
            Configuration dictionary

        Raises:
            ValueError: If the file exists but is not a JSON object
        """
        if self.config_file.exists():
            logger.debug(f"Loading configuration from {self.config_file}")
            with open(self.config_file, 'r', encoding='utf-8') as f:
                loaded = json.load(f)
            if not isinstance(loaded, dict):
                raise ValueError(f"Configuration file {self.config_file} must contain a JSON object")
            self.config = DEFAULT_CONFIG.copy()
            self.config.update(loaded)
            logger.info("Configuration loaded successfully")
        else:
            self.config = DEFAULT_CONFIG.copy()
            if create_if_missing:
                logger.info(f"Configuration file not found, creating default at {self.config_file}")
                self.save_config()

        return self.config

    def save_config(self):
        """Save current configuration (without overrides) to the config file."""
        logger.debug(f"Saving configuration to {self.config_file}")
        with open(self.config_file, 'w', encoding='utf-8') as f:
            json.dump(self.config, f, indent=2)

    def apply_overrides(self, overrides: Dict[str, Any]):
        """
        Apply command-line values for this run only.

        Args:
            overrides: Mapping of config keys to values; None values are skipped
        """
        for key, value in overrides.items():
            if value is not None:
                self.overrides[key] = value

    def get(self, key: str, default=None) -> Any:
        """
        Get configuration value.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Override value if set, else the configured value
        """
        if key in self.overrides:
            return self.overrides[key]
        return self.config.get(key, default)

    def set(self, key: str, value: Any):
        """
        Set configuration value and save to file.

        Args:
            key: Configuration key
            value: Configuration value
        """
        self.config[key] = value
        self.save_config()

    def as_dict(self) -> Dict[str, Any]:
        """Effective configuration with overrides applied."""
        merged = dict(self.config)
        merged.update(self.overrides)
        return merged
