"""
Error taxonomy for the sync pipeline.
"""

from typing import Optional


class SyncError(Exception):
    """Base class for all pipeline errors."""


class FetchError(SyncError):
    """Network failure, timeout or non-2xx response while retrieving a page."""

    def __init__(self, message: str, url: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class PersistenceError(SyncError):
    """The document store rejected a read or write."""


class NotificationError(SyncError):
    """Email dispatch failed."""


class ConfigurationError(SyncError):
    """Missing site root URL or no known categories. Fatal for a whole run."""


class StructuringError(SyncError):
    """Every structured-extraction provider failed or returned invalid JSON."""
