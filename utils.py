#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
General helpers for vidharvest: key masking, operation timing and running
blocking calls off the event loop.
"""

import asyncio
import functools
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from logging_config import StructuredLogger

logger = StructuredLogger(__name__)


def obfuscate_key(key: Optional[str]) -> str:
    """Return an obfuscated version of an API key suitable for logging.

    Returns:
        str: Obfuscated key (e.g., "AIza...abc") or "[MISSING]".
    """
    if not key:
        return "[MISSING]"

    if len(key) > 7:
        return f"{key[:4]}...{key[-3:]}"
    return f"{key[0]}...{'*' * (len(key) - 1)}"


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) and convert aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


async def run_blocking(func: Callable[..., Any], *args: Any,
                       timeout_seconds: Optional[float] = None, **kwargs: Any) -> Any:
    """Run a blocking callable in the default executor, optionally with a timeout.

    Raises:
        asyncio.TimeoutError: If the call does not finish within timeout_seconds.
    """
    loop = asyncio.get_running_loop()
    partial_func = functools.partial(func, *args, **kwargs)
    future = loop.run_in_executor(None, partial_func)
    if timeout_seconds is None:
        return await future
    return await asyncio.wait_for(future, timeout=timeout_seconds)


# --- Performance Timer ---

@contextmanager
def performance_timer(operation_name: str, threshold_ms: float = 100.0):
    """Context manager for timing operations with threshold-based logging.

    Logs at WARNING if the block took more than ten times threshold_ms,
    INFO above threshold_ms, DEBUG otherwise.
    """
    start_time = time.monotonic()
    try:
        yield
    finally:
        duration_ms = (time.monotonic() - start_time) * 1000
        log_data = {
            "operation": operation_name,
            "duration_ms": round(duration_ms, 2),
            "threshold_ms": threshold_ms
        }

        if duration_ms > threshold_ms * 10:
            logger.warning(f"SLOW OPERATION: '{operation_name}' took {duration_ms:.2f}ms", **log_data)
        elif duration_ms > threshold_ms:
            logger.info(f"Performance watch: '{operation_name}' took {duration_ms:.2f}ms", **log_data)
        else:
            logger.debug(f"Performance: '{operation_name}' completed in {duration_ms:.2f}ms", **log_data)
