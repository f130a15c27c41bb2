"""
Exception classes for the Story Forge API.

Every error raised by the gateways derives from StoryForgeError and carries the
HTTP status the request handlers answer with, so api/errors.py can convert any
of them to a JSON body without knowing where it came from.
"""
from typing import Any, Optional


class StoryForgeError(Exception):
    """Base exception for all Story Forge errors."""

    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigError(StoryForgeError):
    """Raised when the credentials a gateway needs are missing."""
    status_code = 500


# =============================================================================
# Input Errors
# =============================================================================

class ValidationError(StoryForgeError):
    """Raised for bad input shape, size or type."""
    status_code = 400


# =============================================================================
# Vendor Errors
# =============================================================================

class UpstreamError(StoryForgeError):
    """Raised when a vendor API answers with a non-2xx status."""

    status_code = 500

    def __init__(self, message: str, status: int = 0, body: Any = None, details: Optional[str] = None):
        super().__init__(message, details)
        self.status = status
        self.body = body


# =============================================================================
# Persistence Errors
# =============================================================================

class StoreError(StoryForgeError):
    """Raised when the relational store or object storage call fails."""
    status_code = 500


class NotFoundError(StoreError):
    """Raised when a row addressed by id does not exist."""
    status_code = 404
