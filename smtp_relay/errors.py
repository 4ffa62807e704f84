"""Exceptions raised by the relay and mapped to JSON responses by the API."""

from __future__ import annotations

from typing import Any, Dict, Optional


class RelayError(Exception):
    """Base class for errors that end a request with a JSON error body."""

    status_code = 500

    def __init__(self, message: str, headers: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.headers = headers or {}

    @property
    def payload(self) -> Dict[str, Any]:
        return {"error": self.message}


class BadRequest(RelayError):
    """The request body is missing fields or carries invalid values."""

    status_code = 400


class Unauthorized(RelayError):
    """The SMTP session could not be established, verified or used to send."""

    status_code = 401

    def __init__(self, message: str = "SMTP authentication failed or email rejected"):
        super().__init__(message)

    @property
    def payload(self) -> Dict[str, Any]:
        return {"success": False, "error": self.message}


class PayloadTooLarge(RelayError):
    """The request body exceeds the configured size ceiling."""

    status_code = 413

    def __init__(self, message: str = "Payload too large"):
        super().__init__(message)


class TooManyRequests(RelayError):
    """The client exhausted its request budget for the current window."""

    status_code = 429

    def __init__(self, retry_after: int, message: str = "Too many requests"):
        super().__init__(message, headers={"Retry-After": str(retry_after)})
        self.retry_after = retry_after
