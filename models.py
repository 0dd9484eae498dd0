#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Pydantic models and dataclasses for vidharvest: the Video record produced by
ingestion, the list query accepted by the read API, and the response
envelopes it returns.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import isodate
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from config import config
from logging_config import StructuredLogger
from utils import as_utc

logger = StructuredLogger(__name__)

SORTABLE_FIELDS = ("publishedAt", "title", "channelTitle")
DEFAULT_SORT_FIELD = "publishedAt"


@dataclass
class Video:
    """Video metadata as stored by the ingestion cycle.

    Thumbnails map a size label ("default", "medium", "high", ...) to a dict
    with url, width and height.
    """

    video_id: str
    title: str
    published_at: datetime
    description: str = ""
    thumbnails: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    channel_title: Optional[str] = None
    channel_id: Optional[str] = None

    @classmethod
    def from_search_item(cls, item: dict) -> "Video":
        """Create a Video from one search.list result item.

        Raises:
            KeyError: If the item has no video id, snippet or title.
            ValueError: If publishedAt is missing or not an ISO 8601 timestamp.
        """
        video_id = item["id"]["videoId"]
        snippet = item["snippet"]
        published_raw = snippet.get("publishedAt")
        if not published_raw:
            raise ValueError(f"Video {video_id} has no publishedAt")

        return cls(
            video_id=video_id,
            title=snippet["title"],
            description=snippet.get("description", "") or "",
            published_at=as_utc(isodate.parse_datetime(published_raw)),
            thumbnails=_clean_thumbnails(snippet.get("thumbnails")),
            channel_title=snippet.get("channelTitle"),
            channel_id=snippet.get("channelId"),
        )


def _clean_thumbnails(raw: Any) -> Dict[str, Dict[str, Any]]:
    """Keep only url/width/height for each thumbnail size."""
    if not isinstance(raw, dict):
        return {}
    thumbnails = {}
    for label, thumb in raw.items():
        if isinstance(thumb, dict) and thumb.get("url"):
            thumbnails[label] = {
                "url": thumb.get("url"),
                "width": thumb.get("width"),
                "height": thumb.get("height"),
            }
    return thumbnails


# --- API Schemas ---

class CamelModel(BaseModel):
    """Base for response models serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class Thumbnail(CamelModel):
    url: str
    width: Optional[int] = None
    height: Optional[int] = None


class VideoOut(CamelModel):
    """A stored video as returned by the read API."""

    video_id: str
    title: str
    description: Optional[str] = None
    published_at: datetime
    thumbnails: Dict[str, Thumbnail] = Field(default_factory=dict)
    channel_title: Optional[str] = None
    channel_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("published_at", "created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    @field_validator("thumbnails", mode="before")
    @classmethod
    def default_thumbnails(cls, v: Any) -> Any:
        return v or {}


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_videos: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = -(-total // limit) if limit else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_videos=total,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )


class DashboardFilters(CamelModel):
    channel_title: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    title: Optional[str] = None


class DashboardSorting(CamelModel):
    sort_by: str
    sort_order: str


class Dashboard(CamelModel):
    filters: DashboardFilters
    sorting: DashboardSorting


class VideoListResponse(CamelModel):
    success: bool = True
    count: int
    pagination: Pagination
    data: List[VideoOut]
    dashboard: Optional[Dashboard] = None


class ErrorResponse(CamelModel):
    """Model for error responses."""

    success: bool = False
    error: str = Field(..., description="Detailed error message.")
    error_code: Optional[str] = Field(None, description="Optional internal error code.")


class VideoQuery(BaseModel):
    """Validated filters, sorting and paging for listing videos."""

    page: int = Field(1, ge=1)
    limit: int = Field(config.DEFAULT_PAGE_LIMIT, ge=1)
    sort_by: str = DEFAULT_SORT_FIELD
    sort_order: str = "desc"
    channel_title: Optional[str] = None
    title: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    sort_requested: bool = False

    @field_validator("limit")
    @classmethod
    def cap_limit(cls, v: int) -> int:
        return min(v, config.MAX_PAGE_LIMIT)

    @field_validator("sort_by", mode="before")
    @classmethod
    def validate_sort_by(cls, v: Optional[str]) -> str:
        return v if v in SORTABLE_FIELDS else DEFAULT_SORT_FIELD

    @field_validator("sort_order", mode="before")
    @classmethod
    def validate_sort_order(cls, v: Optional[str]) -> str:
        if isinstance(v, str) and v.lower() in ("asc", "desc"):
            return v.lower()
        return "desc"

    @field_validator("channel_title", "title", mode="before")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def has_dashboard_options(self) -> bool:
        """True when any filter or a non-default sort was requested."""
        return bool(
            self.channel_title or self.title or self.date_from or self.date_to
            or self.sort_by != DEFAULT_SORT_FIELD or self.sort_requested
        )

    def dashboard(self) -> Dashboard:
        return Dashboard(
            filters=DashboardFilters(
                channel_title=self.channel_title,
                date_from=self.date_from,
                date_to=self.date_to,
                title=self.title,
            ),
            sorting=DashboardSorting(sort_by=self.sort_by, sort_order=self.sort_order),
        )
