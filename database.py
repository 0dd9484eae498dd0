#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
SQLAlchemy schema and engine/session setup for vidharvest.
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from config import config
from logging_config import StructuredLogger

logger = StructuredLogger(__name__)

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VideoRow(Base):
    __tablename__ = "videos"

    id = Column(Integer, primary_key=True, autoincrement=True)
    video_id = Column(String(64), unique=True, nullable=False, index=True)
    title = Column(String(500), nullable=False, index=True)
    description = Column(Text, default="")
    published_at = Column(DateTime(timezone=True), nullable=False, index=True)
    thumbnails = Column(JSON, default=dict)
    channel_title = Column(String(300), index=True)
    channel_id = Column(String(64))
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    def __repr__(self):
        return f"<VideoRow(video_id='{self.video_id}', title='{(self.title or '')[:30]}...')>"


def create_db_engine(url: str = config.DATABASE_URL, echo: bool = config.DATABASE_ECHO) -> Engine:
    """Create the SQLAlchemy engine for a database URL.

    SQLite connections are shared with executor threads, and in-memory SQLite
    uses a single static connection so every session sees the same database.
    """
    kwargs = {"echo": echo, "future": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = StaticPool
    engine = create_engine(url, **kwargs)
    logger.info("Database engine created.", dialect=engine.dialect.name)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False, future=True)


def init_db(engine: Engine) -> None:
    """Create tables if they don't exist (idempotent)."""
    Base.metadata.create_all(engine)
    logger.info("Database tables ensured.")
