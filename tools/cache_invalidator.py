"""
Cache invalidation sink — asks the front end to drop its cached pages.
"""

import logging

import httpx

logger = logging.getLogger(__name__)


class CacheInvalidator:
    """Single best-effort POST to the front end's cache-clear endpoint."""

    def __init__(self, url: str, timeout: float = 5.0):
        self.url = url
        self.timeout = timeout

    def clear(self) -> bool:
        """Returns True on a 2xx response. Never raises."""
        if not self.url:
            return False
        try:
            response = httpx.post(self.url, json={}, timeout=self.timeout)
            return response.is_success
        except httpx.HTTPError as e:
            logger.warning(f"[Cache] Clear request to {self.url} failed: {e}")
            return False
