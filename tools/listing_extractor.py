"""
Listing Extractor — parses category/listing HTML into candidate job entries
and discovers pagination links. Uses BeautifulSoup CSS selectors.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from models.job import JobListingEntry
from tools.url_canonicalizer import canonicalize, canonicalize_or_trim, host_of


# Candidate anchors, most specific first. _extract_jobs walks this list in
# reverse, so a more specific selector overrides a generic one for the same link.
LISTING_SELECTORS = [
    "a.post-link",
    ".entry-title a",
    ".post-title a",
    "article h1 a",
    "article h2 a",
    "article h3 a",
    ".post h2 a",
    ".post h3 a",
    "h2 a",
    "h3 a",
    "li a",
]

PAGINATION_SELECTORS = (
    "a[rel=next], .nav-links a, .pagination a, .page-numbers a, "
    "a.next, a.older-posts, .next a"
)

# Removed before extraction (site chrome, not listings)
NOISE_SELECTORS = "script, style, noscript, nav, .menu, .nav-menu, #primary-menu"

MIN_TITLE_LENGTH = 10

NAV_LABELS = {
    "home",
    "contact us",
    "privacy policy",
    "disclaimer",
    "more",
    "about us",
    "sitemap",
}

IGNORE_PATH_RE = re.compile(
    r"(/tag/|/author/|/page/\d+/?$|/search/|/wp-admin/|/feed/?$)", re.IGNORECASE
)
NEXT_TEXT_RE = re.compile(r"next|older|›|»", re.IGNORECASE)
PAGED_URL_RE = re.compile(r"page/\d+|paged=\d+", re.IGNORECASE)


@dataclass
class ListingPage:
    """Jobs and pagination links found on one listing page."""

    url: str
    jobs: list[JobListingEntry] = field(default_factory=list)
    next_links: list[str] = field(default_factory=list)


def clean_text(text: str) -> str:
    """Collapse whitespace and trim."""
    return re.sub(r"\s+", " ", text or "").strip()


def _is_usable_href(href: Optional[str]) -> bool:
    if not href:
        return False
    href = href.strip()
    return bool(href) and href != "#" and not href.lower().startswith("javascript:")


def _parse_datetime(value: str) -> Optional[datetime]:
    try:
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _nearby_publish_date(anchor) -> Optional[datetime]:
    """Best-effort publish date from a <time datetime> in the enclosing article."""
    container = anchor.find_parent("article") or anchor.find_parent(class_="post")
    if container is None:
        return None
    stamp = container.find("time", attrs={"datetime": True})
    if stamp is None:
        return None
    return _parse_datetime(stamp["datetime"])


def discover_pagination_links(soup: BeautifulSoup, current_url: str) -> list[str]:
    """
    Find same-host links to further listing pages (next/older/numbered).
    """
    base_host = host_of(current_url)
    found: dict[str, None] = {}

    def _resolve(href: Optional[str]) -> Optional[str]:
        if not _is_usable_href(href):
            return None
        full = urljoin(current_url, href.strip())
        if host_of(full) != base_host:
            return None
        return full

    for el in soup.select(PAGINATION_SELECTORS):
        full = _resolve(el.get("href"))
        if not full:
            continue
        text = clean_text(el.get_text(" ")).lower()
        rel = el.get("rel") or []
        if "next" in rel or NEXT_TEXT_RE.search(text) or PAGED_URL_RE.search(full):
            found[full] = None

    # Numeric pagination links (2, 3, ...)
    for el in soup.find_all("a", href=True):
        if not re.fullmatch(r"\d+", clean_text(el.get_text())):
            continue
        full = _resolve(el.get("href"))
        if full and PAGED_URL_RE.search(full):
            found[full] = None

    return list(found)


def _extract_jobs(soup: BeautifulSoup, base_url: str) -> list[JobListingEntry]:
    base_canonical = canonicalize(base_url)
    base_host = host_of(base_url)
    by_link: dict[str, JobListingEntry] = {}

    for selector in reversed(LISTING_SELECTORS):
        for anchor in soup.select(selector):
            title = clean_text(anchor.get_text(" "))
            href = anchor.get("href")
            if not title or len(title) < MIN_TITLE_LENGTH or not _is_usable_href(href):
                continue
            if title.lower() in NAV_LABELS:
                continue

            link = urljoin(base_url, href.strip())
            if not link.startswith(("http://", "https://")) or host_of(link) != base_host:
                continue
            canonical_link = canonicalize_or_trim(link)
            if canonical_link == base_canonical or IGNORE_PATH_RE.search(link):
                continue

            by_link[link] = JobListingEntry(
                title=title,
                link=link,
                canonical_link=canonical_link,
                publish_date=_nearby_publish_date(anchor),
            )

    return list(by_link.values())


def parse_listing_page(html: str, page_url: str) -> ListingPage:
    """
    Parse one listing page into job candidates plus pagination links.
    Malformed or empty HTML yields an empty page, never an error.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    next_links = discover_pagination_links(soup, page_url)

    for element in soup.select(NOISE_SELECTORS):
        element.decompose()

    return ListingPage(url=page_url, jobs=_extract_jobs(soup, page_url), next_links=next_links)


def extract_listing(html: str, base_url: str) -> list[JobListingEntry]:
    """
    Extract candidate job entries (title, absolute link) from listing HTML.

    Args:
        html: Raw HTML string.
        base_url: URL the HTML was fetched from, for resolving relative links.

    Returns:
        Entries unique by absolute link. Order is not significant.
    """
    return parse_listing_page(html, base_url).jobs
