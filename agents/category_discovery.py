"""
Category Discovery Agent — finds category links on the site root (menu
links, then category-like sitemap entries) and stores them in the host's
single section document. The site-wide sync never runs this on its own.
"""

import logging
import re
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup

from agents.site_sync import consolidate_sections, union_categories
from models.errors import FetchError
from models.job import Category, SiteSection
from tools.listing_extractor import NAV_LABELS, clean_text
from tools.url_canonicalizer import canonicalize_or_trim, host_of

logger = logging.getLogger(__name__)


MENU_SELECTORS = (
    "nav a, .menu a, ul.navigation a, .nav-menu a, "
    "#primary-menu a, .header-menu a, .menubar a"
)

SITEMAP_LOC_RE = re.compile(r"<loc>(.*?)</loc>", re.IGNORECASE | re.DOTALL)
SITEMAP_CATEGORY_RE = re.compile(r"/category/|/tag/|latest|job|vacancy", re.IGNORECASE)
MAX_SITEMAP_LOCS = 2000
MAX_SITEMAP_CATEGORIES = 50
PLACEHOLDER_NAME = "Auto"


def discover_menu_categories(html: str, site_url: str) -> list[Category]:
    """Named same-host links from the site's navigation menus."""
    soup = BeautifulSoup(html, "html.parser")
    site_host = host_of(site_url)
    categories = []

    for anchor in soup.select(MENU_SELECTORS):
        name = clean_text(anchor.get_text(" "))
        href = (anchor.get("href") or "").strip()
        if not name or not href or href in ("#", "/") or href.startswith("javascript:"):
            continue
        if name.lower() in NAV_LABELS:
            continue

        link = urljoin(site_url, href)
        if host_of(link) != site_host:
            continue
        categories.append(Category(name=name, link=link))

    return union_categories(categories)


def discover_sitemap_categories(xml: str) -> list[Category]:
    """Category-like <loc> entries of sitemap.xml, named with the placeholder."""
    locs = [loc.strip() for loc in SITEMAP_LOC_RE.findall(xml or "")][:MAX_SITEMAP_LOCS]
    links = [loc for loc in locs if loc and SITEMAP_CATEGORY_RE.search(loc)]
    categories = union_categories(Category(name=PLACEHOLDER_NAME, link=link) for link in links)
    return categories[:MAX_SITEMAP_CATEGORIES]


def _sitemap_url(site_url: str) -> str:
    parts = urlsplit(site_url)
    return f"{parts.scheme}://{parts.netloc}/sitemap.xml"


def discover_categories(context) -> dict:
    """
    Discover categories for the configured site and save them.

    Returns:
        {"success", "site", "count", "added", "categories"} or
        {"success": False, "error"}
        when the site root cannot be fetched.
    """
    site_url = context.site_root()

    try:
        html = context.fetch(site_url)
    except FetchError as e:
        logger.error(f"[Discovery] Cannot fetch site root {site_url}: {e}")
        return {"success": False, "error": str(e)}

    menu = discover_menu_categories(html, site_url)

    try:
        sitemap = discover_sitemap_categories(context.fetch(_sitemap_url(site_url)))
    except FetchError as e:
        logger.warning(f"[Discovery] No usable sitemap: {e}")
        sitemap = []

    section = consolidate_sections(context, site_url)
    if section is None:
        section = SiteSection(url=site_url, host=host_of(site_url))

    before = {canonicalize_or_trim(c.link) for c in section.categories}
    # Menu names win over the sitemap placeholder for the same link
    section.categories = union_categories(section.categories, menu, sitemap)
    context.store.save_section(section)

    added = [c for c in section.categories if canonicalize_or_trim(c.link) not in before]
    logger.info(
        f"[Discovery] {site_url}: {len(menu)} menu + {len(sitemap)} sitemap link(s), "
        f"{len(added)} new, {len(section.categories)} total"
    )
    return {
        "success": True,
        "site": site_url,
        "count": len(section.categories),
        "added": len(added),
        "categories": [c.to_document() for c in section.categories],
    }
