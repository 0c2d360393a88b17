"""
SyncContext — the explicitly constructed set of services every sync operation
runs against. Built once at process start, then init() is called once.
"""

import logging
from typing import Callable, Optional

from agents.structurer import StructuredExtractor
from config.settings import Settings
from models.errors import ConfigurationError
from tools.cache_invalidator import CacheInvalidator
from tools.job_store import JobStore
from tools.notifier import Mailer
from tools.url_canonicalizer import canonicalize, ensure_protocol
from tools.web_scraper import PageFetcher

logger = logging.getLogger(__name__)


class SyncContext:
    """Holds the store, fetcher, mailer, cache sink and structurer."""

    def __init__(
        self,
        settings: Settings,
        store: Optional[JobStore] = None,
        fetcher: Optional[Callable[[str], str]] = None,
        mailer: Optional[Mailer] = None,
        cache: Optional[CacheInvalidator] = None,
        structurer: Optional[StructuredExtractor] = None,
    ):
        self.settings = settings
        self.store = store or JobStore(settings.db_path)
        self.fetcher = fetcher or PageFetcher(
            timeout=settings.request_timeout,
            max_per_host=settings.max_requests_per_host,
        )
        self.mailer = mailer or Mailer(
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            smtp_user=settings.smtp_user,
            smtp_password=settings.smtp_password,
            sender=settings.mail_from,
            operator_emails=settings.operator_emails,
            subscriber_source=self.store.list_active_subscriber_emails,
        )
        self.cache = cache or CacheInvalidator(settings.cache_clear_url)
        self.structurer = structurer or StructuredExtractor(
            settings.ai_providers,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
        )
        self._initialized = False

    def init(self) -> "SyncContext":
        """Create tables and set up the mailer and LLM clients. Later calls are no-ops."""
        if self._initialized:
            return self
        self.store.init_db()
        self.mailer.init()
        self.structurer.init()
        self._initialized = True
        logger.info(f"[Context] Initialized (db={self.settings.db_path})")
        return self

    def site_root(self) -> str:
        """
        Canonical site root URL: SITE_URL, else the most recently added site.

        Raises:
            ConfigurationError: when no usable site URL is configured.
        """
        raw = self.settings.site_url or self.store.get_latest_site_url()
        site_url = canonicalize(ensure_protocol(raw) or "")
        if not site_url:
            raise ConfigurationError("No site URL configured (set SITE_URL or seed a site)")
        return site_url

    def fetch(self, url: str) -> str:
        return self.fetcher(url)

    def close(self) -> None:
        close = getattr(self.fetcher, "close", None)
        if callable(close):
            close()
