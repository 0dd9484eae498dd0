#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Custom exception classes and error handling utilities for vidharvest.

Every failure the ingestion pipeline or the read API can surface is an
AppBaseError subclass carrying its own error code and HTTP status, so the
scheduler can log it and the API layer can turn it into a JSON response.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


# --- Base Exception Classes ---

class AppBaseError(Exception):
    """Base class for all application-specific exceptions.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code
        http_status_code: HTTP status code to use in API responses
        retry_after: Optional seconds to wait before retrying
    """

    def __init__(self, message: str, error_code: Optional[str] = None,
                http_status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
                retry_after: Optional[int] = None):
        self.message = message
        self.error_code = error_code or self.__class__.__name__.upper()
        self.http_status_code = http_status_code
        self.retry_after = retry_after
        super().__init__(message)

    def headers(self) -> Dict[str, str]:
        """Response headers describing this error."""
        headers = {"X-Error-Code": self.error_code}
        if self.retry_after:
            headers["Retry-After"] = str(self.retry_after)
        return headers

    def to_dict(self) -> Dict[str, Any]:
        """Body used by the API error envelope."""
        return {"success": False, "error": self.message, "errorCode": self.error_code}

    def to_http_exception(self) -> HTTPException:
        """Convert this exception to a FastAPI HTTPException."""
        return HTTPException(
            status_code=self.http_status_code,
            detail=self.message,
            headers=self.headers()
        )


class TransientError(AppBaseError):
    """Base class for errors that may clear up on a later cycle."""
    pass


class CriticalError(AppBaseError):
    """Base class for errors that need an operator to fix something."""
    pass


# --- Credential / Quota Exceptions ---

class ConfigurationError(CriticalError):
    """Raised when the API key configuration is missing or unusable."""

    def __init__(self, message: str = "No YouTube API keys configured"):
        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            http_status_code=status.HTTP_503_SERVICE_UNAVAILABLE
        )


class NoAvailableCredentialsError(TransientError):
    """Raised when a caller asks for the current key while every key is exhausted."""

    def __init__(self, message: str = "No available API keys"):
        super().__init__(
            message=message,
            error_code="NO_AVAILABLE_KEYS",
            http_status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            retry_after=3600
        )


class QuotaExhaustedError(TransientError):
    """Raised when every API key ran out of quota during a fetch."""

    def __init__(self, message: str = "All API keys are exhausted. Please try again later."):
        super().__init__(
            message=message,
            error_code="QUOTA_EXHAUSTED",
            http_status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            retry_after=3600
        )


# --- Upstream / Storage Exceptions ---

class UpstreamError(TransientError):
    """Raised for any non-quota failure talking to the YouTube API.

    Attributes:
        upstream_status: HTTP status returned by YouTube, when there was one.
    """

    def __init__(self, message: str = "YouTube API request failed",
                 upstream_status: Optional[int] = None):
        self.upstream_status = upstream_status
        super().__init__(
            message=message,
            error_code="UPSTREAM_ERROR",
            http_status_code=status.HTTP_502_BAD_GATEWAY
        )


class PersistenceError(AppBaseError):
    """Raised when reading from or writing to the video store fails."""

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(
            message=message,
            error_code="PERSISTENCE_ERROR",
            http_status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


class InvalidInputError(AppBaseError):
    """Raised when the user input is invalid."""

    def __init__(self, message: str = "Invalid input"):
        super().__init__(
            message=message,
            error_code="INVALID_INPUT",
            http_status_code=status.HTTP_400_BAD_REQUEST
        )


# --- Error Handling Utilities ---

def handle_exception(exception: Exception) -> HTTPException:
    """Convert any exception to an appropriate HTTPException.

    Args:
        exception: The exception to handle

    Returns:
        HTTPException: FastAPI exception with appropriate status and headers
    """
    if isinstance(exception, AppBaseError):
        return exception.to_http_exception()

    elif isinstance(exception, HTTPException):
        return exception

    else:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server Error",
            headers={"X-Error-Code": "INTERNAL_SERVER_ERROR"}
        )
