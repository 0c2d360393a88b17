"""
Web Scraper Tool — fetches raw HTML from URLs.
Uses httpx with browser-like headers and a bounded timeout. No retries:
a failed fetch is picked up again by the next scheduled run.
"""

import logging
import threading
from typing import Optional

import httpx

from models.errors import FetchError
from tools.url_canonicalizer import host_of

logger = logging.getLogger(__name__)


# Common browser-like headers to avoid being blocked
DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/122.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
}


class PageFetcher:
    """
    Shared HTTP client for page fetches.

    Concurrent requests to the same host are capped by a per-host semaphore so
    that pagination workers never exceed max_per_host in-flight requests.
    """

    def __init__(self, timeout: int = 20, max_per_host: int = 2, client: Optional[httpx.Client] = None):
        self.timeout = timeout
        self.max_per_host = max(1, max_per_host)
        self._client = client
        self._host_limits: dict[str, threading.BoundedSemaphore] = {}
        self._lock = threading.Lock()

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                headers=DEFAULT_HEADERS,
                timeout=self.timeout,
                follow_redirects=True,
                max_redirects=5,
            )
        return self._client

    def _limit_for(self, url: str) -> threading.BoundedSemaphore:
        host = host_of(url)
        with self._lock:
            if host not in self._host_limits:
                self._host_limits[host] = threading.BoundedSemaphore(self.max_per_host)
            return self._host_limits[host]

    def fetch(self, url: str) -> str:
        """
        Fetch a web page and return its HTML content.

        Raises:
            FetchError: on timeout, connection error or non-2xx status.
        """
        with self._limit_for(url):
            try:
                response = self.client.get(url)
            except httpx.TimeoutException as e:
                raise FetchError(f"Timeout after {self.timeout}s for {url}", url=url) from e
            except httpx.HTTPError as e:
                raise FetchError(f"HTTP error for {url}: {e}", url=url) from e

        if not response.is_success:
            raise FetchError(
                f"HTTP {response.status_code} for {url}",
                url=url,
                status_code=response.status_code,
            )

        logger.debug(f"[Scraper] Fetched {len(response.text)} chars from {url}")
        return response.text

    def __call__(self, url: str) -> str:
        return self.fetch(url)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
