#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
YouTube Data API v3 search client for vidharvest.

Issues search.list requests authenticated with the key pool's current key.
A 403 response means that key's daily quota is gone: the key is marked
exhausted and the same request is retried with the next key, at most once
per key in the pool.
"""

import asyncio
from typing import Any, Callable, Dict, Optional

import httplib2
from googleapiclient.discovery import Resource, build
from googleapiclient.errors import HttpError

from config import config
from exceptions import NoAvailableCredentialsError, QuotaExhaustedError, UpstreamError
from logging_config import StructuredLogger
from services.key_pool import KeyPool
from utils import obfuscate_key, run_blocking

logger = StructuredLogger(__name__)

QUOTA_EXCEEDED_STATUS = 403


def build_youtube_service(api_key: str) -> Resource:
    """Build a YouTube API Resource authenticated with one key."""
    # cache_discovery=False prevents issues with stale discovery documents
    return build("youtube", "v3", developerKey=api_key, cache_discovery=False)


class YouTubeAPIClient:
    """Client for the YouTube search endpoint with key rotation on quota errors."""

    # API quota costs for the endpoints used here
    API_COST = {
        "search.list": 100,
    }

    def __init__(self, key_pool: KeyPool,
                 service_factory: Callable[[str], Any] = build_youtube_service,
                 page_size: int = config.SEARCH_PAGE_SIZE,
                 timeout: float = config.API_TIMEOUT_SECONDS):
        """Initialize the YouTube API client.

        Args:
            key_pool: Pool providing the key for each request.
            service_factory: Builds an API Resource for a given key.
            page_size: maxResults sent with every search request.
            timeout: Timeout in seconds for a single request.
        """
        self.key_pool = key_pool
        self._service_factory = service_factory
        self._services: Dict[str, Any] = {}
        self.page_size = page_size
        self.timeout = timeout

        # Statistics tracking
        self.api_calls_count = 0
        self.api_quota_used = 0
        self.quota_errors_count = 0
        logger.info("YouTube API Client initialized.", key_count=key_pool.size)

    def _service_for(self, api_key: str) -> Any:
        """Return the cached API Resource for a key, building it on first use."""
        service = self._services.get(api_key)
        if service is None:
            try:
                service = self._service_factory(api_key)
            except Exception as e:
                logger.error(f"Could not build YouTube API service: {e}", error=str(e))
                raise UpstreamError(f"Could not initialize YouTube API service: {e}") from e
            self._services[api_key] = service
        return service

    def _build_search_params(self, query: str, page_token: Optional[str]) -> Dict[str, Any]:
        params = {
            "part": "snippet",
            "q": query,
            "maxResults": self.page_size,
            "type": "video",
            "order": "date",
        }
        if page_token:
            params["pageToken"] = page_token
        return params

    async def _execute_search(self, api_key: str, params: Dict[str, Any]) -> dict:
        """Run one search.list call with the given key.

        Raises:
            HttpError: Propagated for the caller to classify.
            UpstreamError: On transport failures, timeouts, or a malformed body.
        """
        request = self._service_for(api_key).search().list(**params)
        try:
            response = await run_blocking(request.execute, timeout_seconds=self.timeout)
        except HttpError:
            raise
        except asyncio.TimeoutError as e:
            raise UpstreamError(f"YouTube search timed out after {self.timeout} seconds") from e
        except (httplib2.HttpLib2Error, OSError, ValueError) as e:
            raise UpstreamError(f"YouTube search request failed: {e}") from e

        self.api_calls_count += 1
        self.api_quota_used += self.API_COST["search.list"]

        if not isinstance(response, dict):
            raise UpstreamError(f"Malformed YouTube search response of type {type(response).__name__}")
        return response

    async def fetch_page(self, query: str, page_token: Optional[str] = None) -> dict:
        """Fetch one page of the newest videos matching a query.

        Args:
            query: Search term.
            page_token: Continuation token from a previous page.

        Returns:
            dict: The raw search.list response ("items", optional "nextPageToken").

        Raises:
            QuotaExhaustedError: If every key is (or becomes) exhausted.
            UpstreamError: For any other API or transport failure.
        """
        params = self._build_search_params(query, page_token)
        max_attempts = self.key_pool.size

        if not self.key_pool.has_available():
            # A full rotation runs the reset sweep for keys past their window
            self.key_pool.rotate()

        for attempt in range(1, max_attempts + 1):
            if not self.key_pool.has_available():
                break
            try:
                api_key = self.key_pool.current_credential()
            except NoAvailableCredentialsError:
                break

            logger.debug(
                f"Searching YouTube for '{query}' with key {obfuscate_key(api_key)}",
                query=query,
                page_token=page_token,
                attempt=attempt,
                max_attempts=max_attempts
            )

            try:
                return await self._execute_search(api_key, params)
            except HttpError as http_err:
                status_code = getattr(getattr(http_err, "resp", None), "status", None)
                if status_code == QUOTA_EXCEEDED_STATUS:
                    self.quota_errors_count += 1
                    self.key_pool.mark_exhausted()
                    logger.warning(
                        f"Quota exceeded for key {obfuscate_key(api_key)} (attempt {attempt}/{max_attempts})",
                        attempt=attempt,
                        keys_available=self.key_pool.has_available()
                    )
                    continue

                logger.error(f"YouTube API error {status_code}: {http_err}", status=status_code, exc_info=False)
                raise UpstreamError(f"YouTube API error: {http_err}", upstream_status=status_code) from http_err

        logger.error("All API keys are exhausted.", query=query, exc_info=False)
        raise QuotaExhaustedError()

    async def get_api_stats(self) -> Dict[str, Any]:
        """Return call counters for this client instance."""
        return {
            "api_calls_count": self.api_calls_count,
            "api_quota_used_estimated": self.api_quota_used,
            "quota_errors_count": self.quota_errors_count,
            "keys_available": self.key_pool.has_available(),
        }
