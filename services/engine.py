#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Ingestion engine for vidharvest.

Runs fetch-and-persist cycles: fetch the newest page of search results,
map every item to a Video and upsert them one by one. Also owns the
background task that runs a cycle on a fixed interval and keeps the
process alive through failed cycles.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from config import config
from exceptions import AppBaseError, UpstreamError
from logging_config import StructuredLogger
from models import Video
from services.storage import VideoStore
from services.youtube_api import YouTubeAPIClient
from utils import performance_timer, run_blocking

logger = StructuredLogger(__name__)


class IngestionEngine:
    """Orchestrator for periodic YouTube ingestion.

    Each cycle is independent: Idle -> Fetching -> (Empty | Mapping) ->
    Persisting -> Done. Fetch errors and persistence errors propagate out of
    run_cycle() unchanged; only the scheduled wrapper logs and absorbs them.
    """

    def __init__(self, api_client: YouTubeAPIClient, store: VideoStore,
                 query: str = config.SEARCH_QUERY,
                 interval_seconds: float = config.FETCH_INTERVAL_SECONDS):
        """Initialize the ingestion engine.

        Args:
            api_client: Client used to fetch search pages.
            store: Destination for the fetched videos.
            query: Default search term for each cycle.
            interval_seconds: Delay between scheduled cycles.
        """
        self.api_client = api_client
        self.store = store
        self.query = query
        self.interval_seconds = interval_seconds

        self._cycle_lock = asyncio.Lock()
        self._schedule_task: Optional[asyncio.Task] = None
        self._shutdown_flag = asyncio.Event()

        self._stats = {
            "cycles_run": 0,
            "cycles_failed": 0,
            "cycles_skipped": 0,
            "videos_stored_total": 0,
            "last_cycle_at": None,
            "last_success_at": None,
            "last_error": None,
            "engine_start_time": time.monotonic()
        }
        logger.info("IngestionEngine initialized.", query=query, interval_seconds=interval_seconds)

    @staticmethod
    def _map_items(items: List[dict]) -> List[Video]:
        """Map search items to Videos, treating any unmappable item as a malformed response."""
        videos = []
        for index, item in enumerate(items):
            try:
                videos.append(Video.from_search_item(item))
            except (KeyError, TypeError, ValueError) as e:
                raise UpstreamError(f"Malformed search item at position {index}: {e!r}") from e
        return videos

    async def run_cycle(self, query: Optional[str] = None) -> List[Any]:
        """Fetch the newest page for a query and upsert every video on it.

        Only the first page is consumed per cycle.

        Args:
            query: Search term; defaults to the engine's configured query.

        Returns:
            list: The stored records, in the order returned by the API.

        Raises:
            QuotaExhaustedError: If every API key is exhausted.
            UpstreamError: For other fetch failures or a malformed response.
            PersistenceError: If a write fails; remaining items are skipped.
        """
        search_query = query or self.query
        cycle_logger = logger.bind(query=search_query)
        cycle_logger.info(f"Fetching videos for query: {search_query}")

        response = await self.api_client.fetch_page(search_query)
        items = response.get("items") or []
        if not items:
            cycle_logger.info("No videos found for the given query")
            return []

        videos = self._map_items(items)

        saved = []
        for video in videos:
            saved.append(await run_blocking(self.store.upsert_video, video))

        cycle_logger.info(f"Saved {len(saved)} videos to database", count=len(saved))
        return saved

    async def run_scheduled_cycle(self) -> Optional[List[Any]]:
        """Run one cycle for the scheduler, logging instead of raising.

        Returns:
            list | None: Stored records, or None if the cycle failed or was skipped.
        """
        if self._cycle_lock.locked():
            self._stats["cycles_skipped"] += 1
            logger.warning("Previous ingestion cycle still running, skipping this tick.")
            return None

        async with self._cycle_lock:
            self._stats["cycles_run"] += 1
            self._stats["last_cycle_at"] = datetime.now(timezone.utc)
            try:
                with performance_timer("ingestion_cycle", threshold_ms=5000):
                    saved = await self.run_cycle()
            except AppBaseError as e:
                self._stats["cycles_failed"] += 1
                self._stats["last_error"] = {"type": type(e).__name__, "code": e.error_code, "message": e.message}
                logger.error(f"Error in ingestion cycle: {e.message}", error_code=e.error_code, exc_info=False)
                return None
            except Exception as e:
                self._stats["cycles_failed"] += 1
                self._stats["last_error"] = {"type": type(e).__name__, "code": None, "message": str(e)}
                logger.error(f"Unexpected error in ingestion cycle: {e}", error=str(e))
                return None

            self._stats["videos_stored_total"] += len(saved)
            self._stats["last_success_at"] = datetime.now(timezone.utc)
            return saved

    def start(self) -> None:
        """Start the background schedule if not already running.

        The first cycle runs immediately, then one every interval_seconds.
        """
        if self._schedule_task and not self._schedule_task.done():
            logger.debug("Ingestion schedule already running.")
            return

        async def _schedule():
            logger.info(f"Starting ingestion schedule every {self.interval_seconds}s.")
            while not self._shutdown_flag.is_set():
                try:
                    await self.run_scheduled_cycle()
                    await asyncio.wait_for(self._shutdown_flag.wait(), timeout=self.interval_seconds)
                except asyncio.TimeoutError:
                    continue
                except asyncio.CancelledError:
                    logger.info("Ingestion schedule cancelled.")
                    break
            logger.info("Ingestion schedule stopped.")

        self._shutdown_flag.clear()
        loop = asyncio.get_running_loop()
        self._schedule_task = loop.create_task(_schedule())

    @property
    def is_running(self) -> bool:
        return bool(self._schedule_task and not self._schedule_task.done())

    async def shutdown(self) -> None:
        """Stop the background schedule and wait for it to finish."""
        logger.info("Shutting down IngestionEngine...")
        self._shutdown_flag.set()

        if self._schedule_task and not self._schedule_task.done():
            self._schedule_task.cancel()
            try:
                await self._schedule_task
            except asyncio.CancelledError:
                logger.debug("Ingestion schedule task successfully cancelled.")

        logger.info("IngestionEngine shut down complete.")

    async def get_stats(self) -> Dict[str, Any]:
        """Operational statistics for the health endpoint."""
        uptime = time.monotonic() - self._stats["engine_start_time"]
        stats = {key: value for key, value in self._stats.items() if key != "engine_start_time"}
        stats["engine_uptime_seconds"] = round(uptime, 1)
        stats["schedule_running"] = self.is_running
        stats["query"] = self.query
        stats["interval_seconds"] = self.interval_seconds
        stats["api_client_stats"] = await self.api_client.get_api_stats()
        return stats
