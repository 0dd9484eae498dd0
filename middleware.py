#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
FastAPI Middleware classes for vidharvest.

Per-IP rate limiting for the read API, plus security headers and request
logging.
"""

import asyncio
import logging
import time
from collections import defaultdict, deque
from typing import Dict

from fastapi import FastAPI, Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse

from config import config
from logging_config import StructuredLogger

logger = StructuredLogger(__name__)

EXEMPT_PATHS = ("/health", "/docs", "/openapi.json")


def get_client_ip(request: Request) -> str:
    """Client IP, honoring X-Forwarded-For and X-Real-IP from a proxy."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host
    return "unknown"


class RateLimiterMiddleware(BaseHTTPMiddleware):
    """Sliding-window rate limit per client IP address."""

    def __init__(self, app: FastAPI,
                 requests_limit: int = config.RATE_LIMIT_REQUESTS,
                 window_seconds: int = config.RATE_LIMIT_WINDOW_SECONDS):
        super().__init__(app)
        self.requests: Dict[str, deque] = defaultdict(deque)
        self.requests_limit = requests_limit
        self.window_seconds = window_seconds
        self._lock = asyncio.Lock()
        self._last_prune = time.monotonic()

        logger.info(
            f"Rate limiter initialized: {requests_limit} req / {window_seconds}s per IP.",
            limit=requests_limit,
            window=window_seconds
        )

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if path.startswith(EXEMPT_PATHS):
            return await call_next(request)

        client_ip = get_client_ip(request)
        current_time = time.monotonic()

        async with self._lock:
            ip_requests = self.requests[client_ip]

            while ip_requests and ip_requests[0] <= current_time - self.window_seconds:
                ip_requests.popleft()

            if len(ip_requests) >= self.requests_limit:
                retry_after = max(1, int(self.window_seconds - (current_time - ip_requests[0])) + 1)
                logger.warning(
                    f"Rate limit exceeded for {client_ip} ({len(ip_requests)} requests).",
                    client_ip=client_ip,
                    path=path,
                    limit=self.requests_limit
                )
                return JSONResponse(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    content={"success": False, "error": "Rate limit exceeded. Please try again later.", "errorCode": "RATE_LIMITED"},
                    headers={"Retry-After": str(retry_after)}
                )

            ip_requests.append(current_time)
            self._prune(current_time)

        return await call_next(request)

    def _prune(self, now: float) -> None:
        """Forget clients with no request inside the window, at most once per window."""
        if now - self._last_prune < self.window_seconds:
            return
        self._last_prune = now
        cutoff = now - self.window_seconds
        stale = [ip for ip, timestamps in self.requests.items() if not timestamps or timestamps[-1] <= cutoff]
        for ip in stale:
            del self.requests[ip]
        if stale:
            logger.debug(f"Rate limiter dropped {len(stale)} idle clients.", dropped=len(stale))


class SecurityAndLoggingMiddleware(BaseHTTPMiddleware):
    """Adds security headers to responses and logs every completed request with its timing."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start_time = time.monotonic()
        path = request.url.path
        method = request.method
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["X-Content-Type-Options"] = "nosniff"
            response.headers["X-Frame-Options"] = "SAMEORIGIN"
            response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
            return response
        finally:
            process_time_ms = (time.monotonic() - start_time) * 1000

            log_level = logging.INFO
            if status_code >= 500:
                log_level = logging.ERROR
            elif status_code >= 400:
                log_level = logging.WARNING

            log_msg = {
                "path": path,
                "method": method,
                "status_code": status_code,
                "duration_ms": round(process_time_ms, 2),
                "client_ip": get_client_ip(request)
            }
            if log_level == logging.ERROR:
                logger.error("Request completed", exc_info=False, **log_msg)
            elif log_level == logging.WARNING:
                logger.warning("Request completed", **log_msg)
            else:
                logger.info("Request completed", **log_msg)
