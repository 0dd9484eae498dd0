#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Configuration module for vidharvest.

Defines configuration parameters and loads values from environment variables.
"""

import os
import logging
from typing import List, Dict, Any

# Initialize a basic logger for config loading issues
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Default configuration values
_CONFIG_DEFAULTS: Dict[str, Any] = {
    # API Keys
    "API_KEYS": "",  # Comma-separated list, parsed by the key pool
    "API_KEYS_ENV_VAR": "YOUTUBE_API_KEYS",
    "KEY_RESET_WINDOW_SECONDS": 24 * 60 * 60,  # YouTube quota resets daily

    # Ingestion
    "SEARCH_QUERY": "official",
    "SEARCH_PAGE_SIZE": 50,  # Max allowed by search.list
    "FETCH_INTERVAL_SECONDS": 10,
    "INGESTION_ENABLED": True,
    "API_TIMEOUT_SECONDS": 20.0,  # Timeout for a single API request

    # Database
    "DATABASE_URL": "sqlite:///./vidharvest.db",
    "DATABASE_ECHO": False,

    # Read API
    "DEFAULT_PAGE_LIMIT": 10,
    "MAX_PAGE_LIMIT": 100,

    # Web Server
    "DEFAULT_ENCODING": "utf-8",
    "RATE_LIMIT_REQUESTS": 60,  # Max requests per IP per window
    "RATE_LIMIT_WINDOW_SECONDS": 60,

    # Logging
    "LOG_FILE": "vidharvest.log",

    # CORS
    "ALLOWED_ORIGINS": ["*"],
}

_TRUE_VALUES = ("true", "1", "yes", "y", "on")


class Config:
    """Configuration class that loads values from environment variables."""

    def __init__(self, load_from_env=True):
        """Initialize configuration with default values and optionally from environment.

        Args:
            load_from_env: Whether to load values from environment variables
        """
        for key, value in _CONFIG_DEFAULTS.items():
            # Copy lists so instances never share mutable defaults
            setattr(self, key, list(value) if isinstance(value, list) else value)

        if load_from_env:
            self.load_from_env()

    def load_from_env(self):
        """Load configuration values from environment variables."""
        self.API_KEYS = os.environ.get(self.API_KEYS_ENV_VAR, self.API_KEYS)
        self.SEARCH_QUERY = os.environ.get("SEARCH_QUERY", self.SEARCH_QUERY)
        self.DATABASE_URL = os.environ.get("DATABASE_URL", self.DATABASE_URL)
        self.LOG_FILE = os.environ.get("LOG_FILE", self.LOG_FILE)

        env_origins = os.environ.get("ALLOWED_ORIGINS", "")
        if env_origins:
            origins = [origin.strip() for origin in env_origins.split(",")]
            self.ALLOWED_ORIGINS = [o for o in origins if o]
            logger.info(f"CORS origins set from environment: {self.ALLOWED_ORIGINS}")

        self._load_int_from_env("KEY_RESET_WINDOW_SECONDS")
        self._load_int_from_env("SEARCH_PAGE_SIZE")
        self._load_int_from_env("FETCH_INTERVAL_SECONDS")
        self._load_float_from_env("API_TIMEOUT_SECONDS")
        self._load_int_from_env("DEFAULT_PAGE_LIMIT")
        self._load_int_from_env("MAX_PAGE_LIMIT")
        self._load_int_from_env("RATE_LIMIT_REQUESTS")
        self._load_int_from_env("RATE_LIMIT_WINDOW_SECONDS")
        self._load_bool_from_env("INGESTION_ENABLED")
        self._load_bool_from_env("DATABASE_ECHO")

        if self.FETCH_INTERVAL_SECONDS <= 0:
            logger.warning(f"FETCH_INTERVAL_SECONDS must be positive, got {self.FETCH_INTERVAL_SECONDS}. Using 10.")
            self.FETCH_INTERVAL_SECONDS = 10

        if not self.API_KEYS:
            logger.warning(f"API keys not found in env var {self.API_KEYS_ENV_VAR}.")

    def _load_int_from_env(self, key):
        """Load an integer value from environment variable.

        Returns:
            bool: True if the value was loaded, False otherwise
        """
        env_value = os.environ.get(key)
        if env_value is not None:
            try:
                setattr(self, key, int(env_value))
                return True
            except ValueError:
                logger.warning(f"Invalid integer value for {key}: {env_value}")
        return False

    def _load_float_from_env(self, key):
        """Load a float value from environment variable.

        Returns:
            bool: True if the value was loaded, False otherwise
        """
        env_value = os.environ.get(key)
        if env_value is not None:
            try:
                setattr(self, key, float(env_value))
                return True
            except ValueError:
                logger.warning(f"Invalid float value for {key}: {env_value}")
        return False

    def _load_bool_from_env(self, key):
        """Load a boolean flag ("true", "1", "yes", ...) from environment variable."""
        env_value = os.environ.get(key)
        if env_value is not None:
            setattr(self, key, env_value.strip().lower() in _TRUE_VALUES)
            return True
        return False

    @property
    def api_key_list(self) -> List[str]:
        """Configured keys, split and trimmed, for log redaction."""
        if not isinstance(self.API_KEYS, str):
            return []
        return [k.strip() for k in self.API_KEYS.split(",") if k.strip()]


# Create a single instance of Config to be imported by other modules
config = Config(load_from_env=True)
