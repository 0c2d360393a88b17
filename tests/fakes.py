"""
Test doubles: an in-memory fetcher, recording mailer/cache sinks and a
context factory backed by a temporary SQLite file.
"""

import os
import threading

from config.context import SyncContext
from config.settings import Settings
from models.errors import FetchError, NotificationError, StructuringError
from tools.job_store import JobStore


SITE = "https://site.com"


def listing_html(jobs, next_link=None) -> str:
    """WordPress-like listing page for (title, link) pairs."""
    articles = "".join(
        f'<article><h2 class="entry-title"><a href="{link}">{title}</a></h2></article>'
        for title, link in jobs
    )
    nav = ""
    if next_link:
        nav = f'<div class="nav-links"><a class="next page-numbers" href="{next_link}">Next »</a></div>'
    return f"<html><body><nav><a href='/'>Home</a></nav><main>{articles}</main>{nav}</body></html>"


class FakeFetcher:
    """Maps URL to HTML; an Exception value is raised, an unknown URL is a 404."""

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, url):
        with self._lock:
            self.calls.append(url)
        page = self.pages.get(url)
        if isinstance(page, Exception):
            raise page
        if page is None:
            raise FetchError(f"HTTP 404 for {url}", url=url, status_code=404)
        return page


class FakeMailer:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def init(self):
        pass

    def send_new_posts_email(self, new_jobs, category_name, category_url):
        self.calls.append((list(new_jobs), category_name, category_url))
        if self.fail:
            raise NotificationError("SMTP down")
        return True


class FakeCache:
    def __init__(self):
        self.calls = 0

    def clear(self):
        self.calls += 1
        return True


class FakeStructurer:
    def __init__(self, record=None):
        self.record = record
        self.calls = []

    def init(self):
        pass

    def extract(self, page_data):
        self.calls.append(page_data)
        if self.record is None:
            raise StructuringError("All providers failed")
        return {"recruitment": dict(self.record)}


def make_context(tmpdir, pages=None, site_url=SITE, mailer=None, structurer=None, **overrides) -> SyncContext:
    settings = Settings(
        site_url=site_url,
        db_path=os.path.join(tmpdir, "test.db"),
        category_delay_ms=100,
        category_max_pages=5,
        pagination_concurrency=2,
        scrape_details=False,
        notify_to="",
        cache_clear_url="",
        ai_providers=[],
    )
    for key, value in overrides.items():
        setattr(settings, key, value)

    return SyncContext(
        settings,
        store=JobStore(settings.db_path),
        fetcher=FakeFetcher(pages),
        mailer=mailer or FakeMailer(),
        cache=FakeCache(),
        structurer=structurer or FakeStructurer(),
    ).init()
