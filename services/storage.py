#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Video store for vidharvest.

Upserts ingested videos keyed on their YouTube id and answers the read API's
list (filter / sort / page) and text search queries.
"""

import re
from datetime import datetime, time, timedelta, timezone
from typing import List, Optional, Tuple

from sqlalchemy import case, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from database import VideoRow
from exceptions import PersistenceError
from logging_config import StructuredLogger
from models import Video, VideoQuery

logger = StructuredLogger(__name__)

SORT_COLUMNS = {
    "publishedAt": VideoRow.published_at,
    "title": VideoRow.title,
    "channelTitle": VideoRow.channel_title,
}

_TERM_PATTERN = re.compile(r"\w+", re.UNICODE)


def search_terms(text: str) -> List[str]:
    """Split a search string into lowercase word terms, deduplicated in order."""
    terms = []
    for term in _TERM_PATTERN.findall(text.lower()):
        if term not in terms:
            terms.append(term)
    if not terms and text.strip():
        terms.append(text.strip().lower())
    return terms


def _day_start(day) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


class VideoStore:
    """Persistence for Video records backed by a SQLAlchemy session factory."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def upsert_video(self, video: Video) -> VideoRow:
        """Insert the video, or update the row that has the same video_id.

        Raises:
            PersistenceError: If the write fails.
        """
        try:
            with self._session_factory() as session:
                row, created = self._upsert(session, video)
                session.commit()
                logger.debug(
                    f"{'Inserted' if created else 'Updated'} video {video.video_id}",
                    video_id=video.video_id,
                    created=created
                )
                return row
        except SQLAlchemyError as exc:
            logger.error(f"Failed to save video {video.video_id}: {exc}", video_id=video.video_id)
            raise PersistenceError(f"Error saving video {video.video_id}: {exc}") from exc

    def _upsert(self, session: Session, video: Video) -> Tuple[VideoRow, bool]:
        row = session.execute(
            select(VideoRow).where(VideoRow.video_id == video.video_id)
        ).scalar_one_or_none()
        created = row is None
        if created:
            row = VideoRow(video_id=video.video_id)
            session.add(row)

        row.title = video.title
        row.description = video.description
        row.published_at = video.published_at
        row.thumbnails = video.thumbnails
        row.channel_title = video.channel_title
        row.channel_id = video.channel_id

        session.flush()
        return row, created

    def get(self, video_id: str) -> Optional[VideoRow]:
        try:
            with self._session_factory() as session:
                return session.execute(
                    select(VideoRow).where(VideoRow.video_id == video_id)
                ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Error loading video {video_id}: {exc}") from exc

    def count(self) -> int:
        try:
            with self._session_factory() as session:
                return session.execute(select(func.count()).select_from(VideoRow)).scalar_one()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Error counting videos: {exc}") from exc

    @staticmethod
    def _list_conditions(query: VideoQuery) -> list:
        conditions = []
        if query.channel_title:
            conditions.append(VideoRow.channel_title.icontains(query.channel_title, autoescape=True))
        if query.title:
            conditions.append(VideoRow.title.icontains(query.title, autoescape=True))
        if query.date_from:
            conditions.append(VideoRow.published_at >= _day_start(query.date_from))
        if query.date_to:
            # dateTo covers the whole day
            conditions.append(VideoRow.published_at < _day_start(query.date_to) + timedelta(days=1))
        return conditions

    def list_videos(self, query: VideoQuery) -> Tuple[List[VideoRow], int]:
        """Return one page of videos matching the query's filters, plus the total match count.

        Raises:
            PersistenceError: If the query fails.
        """
        conditions = self._list_conditions(query)
        sort_column = SORT_COLUMNS[query.sort_by]
        order = sort_column.asc() if query.sort_order == "asc" else sort_column.desc()

        stmt = (
            select(VideoRow)
            .where(*conditions)
            .order_by(order, VideoRow.id.desc())
            .offset(query.offset)
            .limit(query.limit)
        )
        count_stmt = select(func.count()).select_from(VideoRow).where(*conditions)

        try:
            with self._session_factory() as session:
                rows = list(session.execute(stmt).scalars())
                total = session.execute(count_stmt).scalar_one()
        except SQLAlchemyError as exc:
            logger.error(f"Error listing videos: {exc}")
            raise PersistenceError(f"Error listing videos: {exc}") from exc
        return rows, total

    def search_videos(self, text: str, page: int = 1, limit: int = 10) -> Tuple[List[VideoRow], int]:
        """Relevance search over title and description.

        A video matches if any term appears in its title or description; the
        score counts matched terms in both fields. Ties go to the newest video.

        Raises:
            PersistenceError: If the query fails.
        """
        terms = search_terms(text)
        if not terms:
            return [], 0

        matches = []
        score_parts = []
        for term in terms:
            in_title = VideoRow.title.icontains(term, autoescape=True)
            in_description = VideoRow.description.icontains(term, autoescape=True)
            matches.extend([in_title, in_description])
            score_parts.append(case((in_title, 1), else_=0))
            score_parts.append(case((in_description, 1), else_=0))

        score = sum(score_parts[1:], score_parts[0]).label("score")
        condition = or_(*matches)

        stmt = (
            select(VideoRow, score)
            .where(condition)
            .order_by(score.desc(), VideoRow.published_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        count_stmt = select(func.count()).select_from(VideoRow).where(condition)

        try:
            with self._session_factory() as session:
                rows = [row for row, _score in session.execute(stmt).all()]
                total = session.execute(count_stmt).scalar_one()
        except SQLAlchemyError as exc:
            logger.error(f"Error searching videos: {exc}")
            raise PersistenceError(f"Error searching videos: {exc}") from exc
        return rows, total
