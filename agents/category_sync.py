"""
Category Sync Agent — one category: scrape, merge into the stored list,
persist in a single upsert, then notify once for the new jobs.
"""

import logging
from typing import Optional

from agents.scraper import MAX_PAGES_LIMIT, clamp
from graph.workflow import build_category_workflow
from models.report import CategorySyncResult
from tools.url_canonicalizer import canonicalize

logger = logging.getLogger(__name__)


def sync_category(
    context,
    category_url: str,
    category_name: str = "",
    max_pages: Optional[int] = None,
    send_email: bool = True,
    scrape_details: Optional[bool] = None,
) -> CategorySyncResult:
    """
    Sync one category page into its CategoryPostList.

    Args:
        context: The SyncContext to run against.
        category_url: Category listing URL (canonicalized before use).
        category_name: Display name; the stored name is kept when empty.
        max_pages: Pagination cap, defaults to settings.category_max_pages.
        send_email: Notify subscribers about new jobs.
        scrape_details: Run detail sync for new jobs, defaults to settings.scrape_details.

    Returns:
        CategorySyncResult. Fetch and persistence failures are reported with
        success=False; notification failures are only logged.
    """
    settings = context.settings
    canonical_url = canonicalize(category_url)
    if not canonical_url:
        return CategorySyncResult(
            success=False,
            category_url=category_url or "",
            category_name=category_name,
            error=f"Invalid category URL: {category_url!r}",
        )

    if max_pages is None:
        max_pages = settings.category_max_pages
    if scrape_details is None:
        scrape_details = settings.scrape_details

    graph = build_category_workflow(context)
    final = graph.invoke({
        "category_url": canonical_url,
        "category_name": category_name,
        "max_pages": clamp(max_pages, 1, MAX_PAGES_LIMIT),
        "send_email": send_email,
        "scrape_details": scrape_details,
        "errors": [],
    })

    errors = final.get("errors", [])
    if errors:
        return CategorySyncResult(
            success=False,
            category_url=canonical_url,
            category_name=category_name,
            error="; ".join(errors),
        )

    existing = final.get("existing_list")
    jobs = final["merged_jobs"]
    new_jobs = final["new_jobs"]
    name = category_name or (existing.category_name if existing else "")

    logger.info(
        f"[Category] {canonical_url}: pages={final.get('pages_visited', 0)} "
        f"extracted={len(final.get('scraped_jobs', []))} new={len(new_jobs)} total={len(jobs)}"
    )

    return CategorySyncResult(
        success=True,
        category_url=canonical_url,
        category_name=name,
        count=len(jobs),
        new_jobs_count=len(new_jobs),
        total_in_db=len(jobs),
        is_new_post_list=existing is None,
        pages_visited=final.get("pages_visited", 0),
        jobs=jobs,
        new_jobs=new_jobs,
    )
