#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
API key pool for vidharvest.

Holds the configured YouTube API keys, tracks which ones have run out of
daily quota, rotates between them, and lazily makes a key usable again once
its reset window has passed. There is no background timer: expired keys are
only reconsidered when a rotation wraps all the way around the pool.
"""

import threading
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional

from config import config
from exceptions import ConfigurationError, NoAvailableCredentialsError
from logging_config import StructuredLogger
from utils import obfuscate_key

logger = StructuredLogger(__name__)


@dataclass(frozen=True)
class Credential:
    """One API key and its quota state."""

    secret: str
    exhausted: bool = False
    last_exhausted_at: float = 0.0


def parse_keys(raw: Optional[str]) -> List[str]:
    """Split a comma-separated key list into trimmed, non-empty keys.

    Raises:
        ConfigurationError: If nothing usable was provided.
    """
    if not raw or not isinstance(raw, str) or not raw.strip():
        raise ConfigurationError(
            f"No YouTube API keys provided. Please set {config.API_KEYS_ENV_VAR} in your environment variables."
        )

    keys = [key.strip() for key in raw.split(",")]
    keys = [key for key in keys if key]
    if not keys:
        raise ConfigurationError("No valid API keys found after processing.")
    return keys


def sweep_expired(credentials: List[Credential], now: float, window: float) -> List[Credential]:
    """Return a copy of credentials with every key exhausted at least `window` seconds ago cleared."""
    swept = []
    for cred in credentials:
        if cred.exhausted and now - cred.last_exhausted_at >= window:
            cred = replace(cred, exhausted=False)
        swept.append(cred)
    return swept


class KeyPool:
    """Rotating pool of YouTube API keys.

    Membership is fixed at construction. All methods are serialized with a
    re-entrant lock, so the pool can be shared by the event loop and executor
    threads. Only current_credential() raises; rotation and marking are plain
    state transitions and callers check has_available() afterwards.
    """

    def __init__(self, raw_keys: Optional[str],
                 reset_window_seconds: float = config.KEY_RESET_WINDOW_SECONDS,
                 clock: Callable[[], float] = time.time):
        """Build the pool from a comma-separated key list.

        Args:
            raw_keys: Comma-separated API keys, e.g. "key1, key2".
            reset_window_seconds: How long an exhausted key stays unusable.
            clock: Returns the current time in epoch seconds.

        Raises:
            ConfigurationError: If no valid key is found in raw_keys.
        """
        self._credentials: List[Credential] = [Credential(secret=k) for k in parse_keys(raw_keys)]
        self._cursor = 0
        self._reset_window = reset_window_seconds
        self._clock = clock
        self._lock = threading.RLock()

        logger.info(f"Initialized with {len(self._credentials)} API keys", key_count=len(self._credentials))

    @property
    def size(self) -> int:
        return len(self._credentials)

    def __len__(self) -> int:
        return self.size

    @property
    def cursor(self) -> int:
        with self._lock:
            return self._cursor

    @property
    def credentials(self) -> List[Credential]:
        """Snapshot of the current key states (immutable entries)."""
        with self._lock:
            return list(self._credentials)

    def has_available(self) -> bool:
        """True if at least one key is not exhausted."""
        with self._lock:
            return any(not cred.exhausted for cred in self._credentials)

    def current_credential(self) -> str:
        """Return the key at the cursor.

        Raises:
            NoAvailableCredentialsError: If every key is exhausted.
        """
        with self._lock:
            if not self.has_available():
                raise NoAvailableCredentialsError()
            return self._credentials[self._cursor].secret

    def mark_exhausted(self) -> None:
        """Flag the key at the cursor as out of quota and rotate to the next usable one."""
        with self._lock:
            now = self._clock()
            current = self._credentials[self._cursor]
            self._credentials[self._cursor] = replace(current, exhausted=True, last_exhausted_at=now)
            logger.warning(
                f"API key {obfuscate_key(current.secret)} marked as exhausted",
                key_index=self._cursor,
                available=sum(1 for c in self._credentials if not c.exhausted)
            )
            self.rotate()

    def rotate(self) -> None:
        """Advance the cursor to the next non-exhausted key.

        When the cursor wraps back to where it started without finding one,
        keys whose reset window has passed are cleared once. The pool may
        still be fully exhausted afterwards.
        """
        with self._lock:
            count = len(self._credentials)
            start = self._cursor
            while True:
                self._cursor = (self._cursor + 1) % count
                if self._cursor == start:
                    if self._credentials[start].exhausted:
                        self._sweep()
                    break
                if not self._credentials[self._cursor].exhausted:
                    return

            if self._credentials[self._cursor].exhausted:
                # The sweep may have freed keys other than the start one
                for offset in range(1, count):
                    index = (start + offset) % count
                    if not self._credentials[index].exhausted:
                        self._cursor = index
                        break

    def _sweep(self) -> None:
        before = sum(1 for c in self._credentials if c.exhausted)
        self._credentials = sweep_expired(self._credentials, self._clock(), self._reset_window)
        after = sum(1 for c in self._credentials if c.exhausted)
        if after < before:
            logger.info(f"Reset {before - after} API key(s) after quota window", reset_count=before - after)
        else:
            logger.debug("Quota reset sweep found no keys past the reset window.")

    def snapshot(self) -> Dict[str, Any]:
        """Summary of the pool state with masked keys, for health reporting."""
        with self._lock:
            return {
                "total": len(self._credentials),
                "available": sum(1 for c in self._credentials if not c.exhausted),
                "cursor": self._cursor,
                "keys": [
                    {
                        "key": obfuscate_key(cred.secret),
                        "exhausted": cred.exhausted,
                        "last_exhausted_at": cred.last_exhausted_at or None,
                    }
                    for cred in self._credentials
                ],
            }
