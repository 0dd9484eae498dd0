#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
FastAPI dependency injection functions for vidharvest services.

The lifespan handler in main.py populates the module-level instances below;
route handlers receive them through these functions.
"""

from typing import Optional

from fastapi import HTTPException, status

from services.engine import IngestionEngine
from services.key_pool import KeyPool
from services.storage import VideoStore
from services.youtube_api import YouTubeAPIClient
from logging_config import StructuredLogger

logger = StructuredLogger(__name__)

# --- Service Instances ---
# Populated during application startup, cleared on shutdown.
key_pool: Optional[KeyPool] = None
api_client: Optional[YouTubeAPIClient] = None
video_store: Optional[VideoStore] = None
ingestion_engine: Optional[IngestionEngine] = None


def _unavailable(component: str, code: str) -> HTTPException:
    logger.critical(f"Dependency Error: {component} not initialized.", exc_info=False)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"Service Initialization Error: {component} is not available.",
        headers={"X-Error-Code": code}
    )


def get_video_store() -> VideoStore:
    """Dependency returning the VideoStore.

    Raises:
        HTTPException: 503 if the database was not initialized.
    """
    if not video_store:
        raise _unavailable("Video store", "SERVICE_UNAVAILABLE_VIDEO_STORE")
    return video_store


def get_key_pool() -> Optional[KeyPool]:
    """The key pool, or None when keys are not configured (read-only mode)."""
    return key_pool


def get_ingestion_engine() -> Optional[IngestionEngine]:
    """The ingestion engine, or None when ingestion could not be started."""
    return ingestion_engine
