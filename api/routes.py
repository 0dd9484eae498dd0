#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
API Routes for vidharvest using FastAPI.

Read access to the ingested videos (filtered list and text search) plus a
health check reporting the key pool and ingestion status.
"""

import json
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError

from version import __version__ as app_version
from api.dependencies import get_ingestion_engine, get_key_pool, get_video_store
from config import config
from exceptions import InvalidInputError, PersistenceError
from logging_config import StructuredLogger
from models import ErrorResponse, Pagination, VideoListResponse, VideoOut, VideoQuery
from services.engine import IngestionEngine
from services.key_pool import KeyPool
from services.storage import VideoStore

logger = StructuredLogger(__name__)

router = APIRouter()

# Define common error responses for OpenAPI documentation
ERROR_RESPONSES: Dict[int | str, Dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Invalid input parameters"},
    429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
    500: {"model": ErrorResponse, "description": "Internal server error"},
    503: {"model": ErrorResponse, "description": "Service unavailable (e.g., database not initialized)"}
}


def _parse_date(value: Optional[str], name: str) -> Optional[date]:
    if not value:
        return None
    try:
        if len(value) == 10:
            return date.fromisoformat(value)
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError as e:
        raise InvalidInputError(f"Invalid {name}: '{value}'. Expected YYYY-MM-DD.") from e


@router.get(
    "/api/videos",
    response_model=VideoListResponse,
    response_model_exclude_none=True,
    responses=ERROR_RESPONSES,
    summary="List Videos",
    description="Paginated list of stored videos, newest first by default, with optional channel/title/date filters and sorting."
)
async def get_videos(
    page: int = Query(1, ge=1),
    limit: int = Query(config.DEFAULT_PAGE_LIMIT, ge=1),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    channel_title: Optional[str] = Query(None, alias="channelTitle"),
    title: Optional[str] = Query(None),
    date_from: Optional[str] = Query(None, alias="dateFrom"),
    date_to: Optional[str] = Query(None, alias="dateTo"),
    store: VideoStore = Depends(get_video_store)
):
    """List videos with pagination, filters and sorting."""
    try:
        query = VideoQuery(
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
            channel_title=channel_title,
            title=title,
            date_from=_parse_date(date_from, "dateFrom"),
            date_to=_parse_date(date_to, "dateTo"),
            sort_requested=sort_order is not None,
        )
    except ValidationError as e:
        raise InvalidInputError(f"Invalid query parameters: {e.errors()[0].get('msg', 'invalid value')}") from e

    rows, total = await run_in_threadpool(store.list_videos, query)

    return VideoListResponse(
        count=len(rows),
        pagination=Pagination.build(query.page, query.limit, total),
        data=[VideoOut.model_validate(row) for row in rows],
        dashboard=query.dashboard() if query.has_dashboard_options else None,
    )


@router.get(
    "/api/videos/search",
    response_model=VideoListResponse,
    response_model_exclude_none=True,
    responses=ERROR_RESPONSES,
    summary="Search Videos",
    description="Relevance search over video titles and descriptions."
)
async def search_videos(
    q: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(config.DEFAULT_PAGE_LIMIT, ge=1),
    store: VideoStore = Depends(get_video_store)
):
    """Search stored videos by title and description."""
    if not q or not q.strip():
        raise InvalidInputError("Search term is required")

    limit = min(limit, config.MAX_PAGE_LIMIT)
    rows, total = await run_in_threadpool(store.search_videos, q, page, limit)

    logger.debug(f"Search for '{q[:50]}' matched {total} videos", total=total)
    return VideoListResponse(
        count=len(rows),
        pagination=Pagination.build(page, limit, total),
        data=[VideoOut.model_validate(row) for row in rows],
    )


@router.get(
    "/health",
    summary="Health Check",
    description="Operational status of the service: database, API key pool and ingestion schedule."
)
async def health_check(
    store: VideoStore = Depends(get_video_store),
    key_pool: Optional[KeyPool] = Depends(get_key_pool),
    engine: Optional[IngestionEngine] = Depends(get_ingestion_engine)
):
    """Endpoint to check system health and retrieve operational statistics."""
    health_data: Dict[str, Any] = {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service_version": app_version,
        "components": {
            "video_store": "ready",
            "key_pool": "ready" if key_pool else "not_configured",
            "ingestion_engine": "running" if engine and engine.is_running else "stopped",
        }
    }

    try:
        health_data["video_count"] = await run_in_threadpool(store.count)
    except PersistenceError as e:
        logger.error(f"Database check failed in /health: {e}")
        health_data["status"] = "degraded"
        health_data["components"]["video_store"] = "error"

    if key_pool:
        health_data["key_pool"] = key_pool.snapshot()
    if engine:
        health_data["ingestion"] = await engine.get_stats()

    return Response(
        content=json.dumps(health_data, default=str),
        status_code=status.HTTP_200_OK,
        media_type="application/json"
    )
