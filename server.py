#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Uvicorn server entry point for vidharvest.

Loads .env, configures logging (masking the configured API keys) and starts
the Uvicorn server process.
"""

import logging
import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from config import config
from logging_config import setup_logging

_TRUE_VALUES = ("true", "1", "yes")


def load_environment(env_path: Path = Path(".") / ".env") -> bool:
    """Load a .env file into the environment and refresh the config from it.

    Returns:
        bool: True if a .env file was found and loaded.
    """
    loaded = False
    if env_path.is_file():
        load_dotenv(dotenv_path=env_path, override=True)
        loaded = True
    config.load_from_env()
    return loaded


def configure_logging() -> None:
    """Set up logging from LOG_LEVEL_CONSOLE, LOG_LEVEL_FILE and LOG_STRUCTURED."""
    log_level_console = getattr(logging, os.environ.get("LOG_LEVEL_CONSOLE", "INFO").upper(), logging.INFO)
    log_level_file = getattr(logging, os.environ.get("LOG_LEVEL_FILE", "DEBUG").upper(), logging.DEBUG)
    log_structured = os.environ.get("LOG_STRUCTURED", "true").lower() in _TRUE_VALUES

    setup_logging(
        log_level_console=log_level_console,
        log_level_file=log_level_file,
        structured=log_structured,
        log_file=config.LOG_FILE,
        secrets=config.api_key_list
    )


def main():
    env_loaded = load_environment()
    configure_logging()
    logging.info(".env file loaded." if env_loaded else ".env file not found, using system environment variables.")

    if not config.API_KEYS:
        logging.warning("=" * 80)
        logging.warning(f" WARNING: {config.API_KEYS_ENV_VAR} is not defined.")
        logging.warning(" The API will serve stored videos, but no new videos will be ingested.")
        logging.warning("=" * 80)

    run_host = os.environ.get("HOST", "127.0.0.1")
    try:
        run_port = int(os.environ.get("PORT", "3000"))
    except ValueError:
        logging.warning(f"Invalid PORT environment variable '{os.environ.get('PORT')}', using default 3000.")
        run_port = 3000

    debug_mode = os.environ.get("DEBUG", "false").lower() in _TRUE_VALUES
    uvicorn_log_level = os.environ.get("UVICORN_LOG_LEVEL", "debug" if debug_mode else "info").lower()

    logging.info(f"Starting Uvicorn server on http://{run_host}:{run_port}")
    logging.info(f"Debug mode: {debug_mode}, Uvicorn Log Level: {uvicorn_log_level}")

    # A single worker: the key pool and the ingestion schedule are per-process state
    uvicorn.run(
        "main:app",
        host=run_host,
        port=run_port,
        reload=debug_mode,
        workers=1,
        log_level=uvicorn_log_level,
    )


if __name__ == "__main__":
    main()
