"""
Shared error handling for the CenterPoint Connect resilience layer.
"""

from typing import Dict, Any, Optional


class ConnectException(Exception):
    """Base exception for connect layer errors."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class AuthenticationError(ConnectException):
    """Authentication-related errors."""

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHENTICATION_ERROR", message, details)


class UpstreamError(ConnectException):
    """Transport failure talking to the upstream REST API."""

    def __init__(self, service: str, message: str = "Upstream request failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("UPSTREAM_ERROR", f"{service}: {message}", details)


class RateLimitError(ConnectException):
    """Rate limiting errors."""

    def __init__(self, message: str = "Rate limit exceeded", details: Optional[Dict[str, Any]] = None):
        super().__init__("RATE_LIMIT_ERROR", message, details)


class BatchResultMismatchError(ConnectException):
    """Batch executor output could not be matched to the pending requests."""

    def __init__(self, message: str = "Batch results do not match requests", details: Optional[Dict[str, Any]] = None):
        super().__init__("BATCH_RESULT_MISMATCH", message, details)
