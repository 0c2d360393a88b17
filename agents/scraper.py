"""
Scraper Agent — fetches a category's listing pages and extracts job candidates.

Pagination is breadth-first over discovered next/numbered links, capped at
max_pages. Each wave of pages is fetched by a small worker pool; the fetcher
itself caps concurrent requests per host.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable

from models.errors import FetchError
from models.job import JobListingEntry
from tools.listing_extractor import parse_listing_page
from tools.url_canonicalizer import canonicalize_or_trim

logger = logging.getLogger(__name__)


MAX_PAGES_LIMIT = 80
MAX_CONCURRENCY = 8


@dataclass
class ListingScrape:
    """The one result shape of a listing scrape: the jobs found this pass."""

    jobs: list[JobListingEntry] = field(default_factory=list)
    pages_visited: int = 0
    failed_pages: list[str] = field(default_factory=list)


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(int(value), high))


def scrape_category_pages(
    category_url: str,
    fetch: Callable[[str], str],
    max_pages: int = 20,
    concurrency: int = 3,
) -> ListingScrape:
    """
    Scrape up to max_pages listing pages starting at category_url.

    Raises:
        FetchError: if the first (category) page cannot be fetched. Failures on
        later pages are logged and skipped.
    """
    max_pages = clamp(max_pages, 1, MAX_PAGES_LIMIT)
    concurrency = clamp(concurrency, 1, MAX_CONCURRENCY)

    result = ListingScrape()
    visited: set[str] = set()
    frontier = [category_url]

    with ThreadPoolExecutor(max_workers=concurrency) as pool:
        while frontier and len(visited) < max_pages:
            batch = []
            for url in frontier:
                key = canonicalize_or_trim(url)
                if key in visited or len(visited) >= max_pages:
                    continue
                visited.add(key)
                batch.append(url)
            frontier = []

            futures = [(url, pool.submit(fetch, url)) for url in batch]
            for url, future in futures:
                try:
                    html = future.result()
                except FetchError as e:
                    if url == category_url:
                        raise
                    logger.warning(f"[Scraper] Page fetch failed: {url} ({e})")
                    result.failed_pages.append(url)
                    continue

                page = parse_listing_page(html, url)
                result.jobs.extend(page.jobs)
                result.pages_visited += 1
                frontier.extend(page.next_links)

    return result
