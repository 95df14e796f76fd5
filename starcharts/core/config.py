"""
Configuration module for the star history client.

This module provides centralized configuration with environment variable
support and sensible defaults for the GitHub client components.
"""

import copy
import json
from typing import Any, Dict, Optional

# Default values
DEFAULT_CONFIG = {
    # GitHub API settings
    "github": {
        "tokens": [],
        "page_size": 100,  # Stargazers per page, GitHub serves at most 100
        "max_rate_usage_pct": 80,  # Minimum remaining quota share for a token to be used
        "request_timeout": 30,
    },

    # Cache settings
    "cache": {
        "max_size": 10000,
        "default_ttl": 86400,  # 24 hours
        "backend": "file",  # file keeps etags between runs, memory does not
        "dir": None,  # Defaults to the cache directory under the base directory
    },

    # Logging settings
    "logging": {
        "level": "INFO",
    },
}

MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 100

# Environment variables holding integer settings
INT_SETTINGS = {
    "GITHUB_PAGE_SIZE": "github.page_size",
    "GITHUB_MAX_RATE_LIMIT_USAGE": "github.max_rate_usage_pct",
    "GITHUB_REQUEST_TIMEOUT": "github.request_timeout",
    "CACHE_MAX_SIZE": "cache.max_size",
    "CACHE_TTL": "cache.default_ttl",
}


class Config:
    """Configuration manager for the star history client."""

    def __init__(self, config_file: Optional[str] = None, environment=None, logger=None):
        """Initialize configuration from file and environment variables.

        Args:
            config_file: Optional path to configuration file
            environment: Environment instance for accessing environment variables
            logger: Logger instance
        """
        # Start with default configuration
        self._config = copy.deepcopy(DEFAULT_CONFIG)

        # Store dependencies
        self.environment = environment
        self.logger = logger

        # Load from config file if provided
        if config_file:
            self._load_from_file(config_file)

        # Override with environment variables
        self._load_from_env()

        # Initialize derived settings
        self._init_derived_settings()

        if self.logger:
            self.logger.debug("Configuration initialized")

    def _load_from_file(self, config_file: str):
        """Load configuration from JSON file.

        Args:
            config_file: Path to configuration file
        """
        try:
            with open(config_file, 'r') as f:
                file_config = json.load(f)
        except (OSError, ValueError) as e:
            if self.logger:
                self.logger.warning(f"Error loading configuration from {config_file}: {e}")
            return

        if not isinstance(file_config, dict):
            if self.logger:
                self.logger.warning(f"Ignoring configuration file {config_file}: top level is not an object")
            return

        self._update_nested_dict(self._config, file_config)
        if self.logger:
            self.logger.info(f"Loaded configuration from {config_file}")

    def _load_from_env(self):
        """Load configuration from environment variables."""
        if not self.environment:
            if self.logger:
                self.logger.warning("No environment instance provided, skipping environment variable loading")
            return

        get_env = self.environment.get

        if get_env("GITHUB_TOKENS"):
            self._config["github"]["tokens"] = self.environment.get_github_tokens()

        for env_name, key_path in INT_SETTINGS.items():
            raw = get_env(env_name)
            if not raw:
                continue
            try:
                self.set(key_path, int(raw))
            except ValueError:
                if self.logger:
                    self.logger.warning(f"Ignoring {env_name}={raw!r}: not an integer")

        if backend := get_env("CACHE_BACKEND"):
            self._config["cache"]["backend"] = backend.lower()

        if cache_dir := get_env("CACHE_DIR"):
            self._config["cache"]["dir"] = cache_dir

        if log_level := get_env("LOG_LEVEL"):
            self._config["logging"]["level"] = log_level.upper()

        if self.logger:
            self.logger.debug("Loaded configuration from environment variables")

    def _update_nested_dict(self, target: Dict, source: Dict):
        """Update nested dictionary recursively.

        Args:
            target: Target dictionary to update
            source: Source dictionary with new values
        """
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._update_nested_dict(target[key], value)
            else:
                target[key] = value

    def _init_derived_settings(self):
        """Initialize settings derived from other configuration values."""
        page_size = self._config["github"]["page_size"]
        if not isinstance(page_size, int):
            if self.logger:
                self.logger.warning(f"Ignoring page size {page_size!r}: not an integer")
            page_size = DEFAULT_CONFIG["github"]["page_size"]
        clamped = max(MIN_PAGE_SIZE, min(MAX_PAGE_SIZE, page_size))
        if clamped != page_size and self.logger:
            self.logger.warning(f"Page size {page_size} out of range, using {clamped}")
        self._config["github"]["page_size"] = clamped

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation path.

        Args:
            key_path: Dot notation path to configuration value (e.g., "github.page_size")
            default: Default value to return if path not found

        Returns:
            Configuration value or default
        """
        value = self._config
        for part in key_path.split('.'):
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                return default
        return value

    def set(self, key_path: str, value: Any):
        """Set configuration value using dot notation path.

        Args:
            key_path: Dot notation path to configuration value (e.g., "cache.max_size")
            value: Value to set
        """
        parts = key_path.split('.')
        config = self._config
        for part in parts[:-1]:
            if not isinstance(config.get(part), dict):
                config[part] = {}
            config = config[part]
        config[parts[-1]] = value

    def get_all(self) -> Dict[str, Any]:
        return self._config
