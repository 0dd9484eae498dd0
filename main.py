#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Main FastAPI application setup for vidharvest.

Initializes the FastAPI application, sets up lifespan management for the
database, key pool, YouTube client and ingestion schedule, registers
middleware and error handlers, and includes the API routes.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from version import __version__

from api import dependencies, routes
from config import config
from database import create_db_engine, create_session_factory, init_db
from exceptions import AppBaseError, ConfigurationError, handle_exception
from logging_config import StructuredLogger
from middleware import RateLimiterMiddleware, SecurityAndLoggingMiddleware
from services.engine import IngestionEngine
from services.key_pool import KeyPool
from services.storage import VideoStore
from services.youtube_api import YouTubeAPIClient

logger = StructuredLogger(__name__)


def init_ingestion(store: VideoStore) -> None:
    """Build the key pool, API client and engine into api.dependencies.

    Leaves them as None when no API keys are configured, so the read API
    keeps serving what is already stored.
    """
    try:
        dependencies.key_pool = KeyPool(config.API_KEYS, reset_window_seconds=config.KEY_RESET_WINDOW_SECONDS)
    except ConfigurationError as e:
        logger.critical(f"Ingestion disabled: {e.message}", exc_info=False)
        dependencies.key_pool = None
        dependencies.api_client = None
        dependencies.ingestion_engine = None
        return

    dependencies.api_client = YouTubeAPIClient(dependencies.key_pool)
    dependencies.ingestion_engine = IngestionEngine(
        api_client=dependencies.api_client,
        store=store,
        query=config.SEARCH_QUERY,
        interval_seconds=config.FETCH_INTERVAL_SECONDS
    )


# --- Lifespan Management ---

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialize services on startup and stop the schedule on shutdown."""
    logger.info("Starting vidharvest application lifespan...")

    db_engine = create_db_engine(config.DATABASE_URL)
    init_db(db_engine)
    dependencies.video_store = VideoStore(create_session_factory(db_engine))

    init_ingestion(dependencies.video_store)
    if dependencies.ingestion_engine and config.INGESTION_ENABLED:
        dependencies.ingestion_engine.start()
    elif dependencies.ingestion_engine:
        logger.info("INGESTION_ENABLED is off; the ingestion schedule will not run.")

    yield

    logger.info("Shutting down vidharvest application lifespan...")
    if dependencies.ingestion_engine:
        await dependencies.ingestion_engine.shutdown()

    dependencies.ingestion_engine = None
    dependencies.api_client = None
    dependencies.key_pool = None
    dependencies.video_store = None
    db_engine.dispose()
    logger.info("Lifespan cleanup finished.")


# --- FastAPI Application Instantiation ---

app = FastAPI(
    lifespan=lifespan,
    title="vidharvest API",
    description="Periodically ingests YouTube search results and serves them with filtering, sorting and search.",
    version=__version__
)


@app.exception_handler(AppBaseError)
async def app_error_handler(request: Request, exc: AppBaseError) -> JSONResponse:
    """Render application errors as the standard error envelope."""
    return JSONResponse(status_code=exc.http_status_code, content=exc.to_dict(), headers=exc.headers())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.url.path}: {exc}", path=request.url.path)
    http_exc = handle_exception(exc)
    headers = http_exc.headers or {}
    return JSONResponse(
        status_code=http_exc.status_code,
        content={"success": False, "error": http_exc.detail, "errorCode": headers.get("X-Error-Code")},
        headers=headers
    )


# --- Middleware Registration ---

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials="*" not in config.ALLOWED_ORIGINS,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"]
)
app.add_middleware(RateLimiterMiddleware)
app.add_middleware(SecurityAndLoggingMiddleware)

app.include_router(routes.router)
logger.debug("FastAPI application setup complete.")
