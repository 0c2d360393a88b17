"""
Site Sync Agent — runs the category sync for every known category of the
configured site, one category at a time.

Before the run, duplicate section documents for the site's host are merged
into one. The same function serves the scheduler and the HTTP trigger.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Iterable, Optional

from agents.category_sync import sync_category
from agents.scraper import clamp
from models.errors import ConfigurationError, SyncError
from models.job import Category, SiteSection
from models.report import CategoryFailure, CategorySyncResult, SyncReport
from tools.url_canonicalizer import canonicalize, canonicalize_or_trim, ensure_protocol, host_of

logger = logging.getLogger(__name__)


GENERIC_CATEGORY_NAMES = {"", "auto"}


def _is_generic(name: str) -> bool:
    return (name or "").strip().lower() in GENERIC_CATEGORY_NAMES


def union_categories(*category_lists: Iterable[Category]) -> list[Category]:
    """
    Union category lists by canonical link, keeping first-seen order.
    A real name replaces a placeholder ("" / "Auto") for the same link.
    """
    merged: dict[str, Category] = {}
    for categories in category_lists:
        for category in categories:
            key = canonicalize_or_trim(category.link)
            if not key:
                continue
            current = merged.get(key)
            if current is None:
                merged[key] = category.model_copy()
            elif _is_generic(current.name) and not _is_generic(category.name):
                merged[key] = current.model_copy(update={"name": category.name})
    return list(merged.values())


def merge_site_sections(sections: list[SiteSection], site_url: str) -> tuple[SiteSection, list[SiteSection]]:
    """
    Pick the primary section and fold the others into it.

    The primary is the section whose stored URL already equals the canonical
    site URL, else the first (oldest) one.

    Returns:
        (primary with the union of all categories, duplicates to delete)
    """
    primary = next(
        (s for s in sections if canonicalize(ensure_protocol(s.url) or "") == site_url),
        sections[0],
    )
    duplicates = [s for s in sections if s is not primary]

    merged = primary.model_copy(update={
        "url": site_url,
        "host": host_of(site_url),
        "categories": union_categories(primary.categories, *(s.categories for s in duplicates)),
    })
    return merged, duplicates


def consolidate_sections(context, site_url: str) -> Optional[SiteSection]:
    """
    Load every section for the site's host and leave exactly one behind.
    Returns None when the host has no section yet.
    """
    store = context.store
    sections = store.find_sections_by_host(host_of(site_url))
    if not sections:
        return None

    primary, duplicates = merge_site_sections(sections, site_url)
    store.save_section(primary)
    if duplicates:
        removed = store.delete_sections(s.id for s in duplicates)
        logger.info(
            f"[Sync] Merged {len(duplicates)} duplicate section(s) into #{primary.id} "
            f"({removed} deleted, {len(primary.categories)} categories)"
        )
    return primary


def _delay_seconds(context) -> float:
    return clamp(context.settings.category_delay_ms, 100, 5000) / 1000


def sync_categories_and_jobs(context) -> SyncReport:
    """
    Sync every category of the configured site.

    Returns:
        SyncReport. Configuration errors (no site, no categories) produce
        success=False with no partial aggregate; per-category failures are
        listed in failures and never abort the run.
    """
    started = time.monotonic()

    try:
        site_url = context.site_root()
        section = consolidate_sections(context, site_url)
        if section is None or not section.categories:
            raise ConfigurationError("No categories found for site; run category discovery first")
    except SyncError as e:
        logger.error(f"[Sync] {e}")
        return SyncReport(success=False, error=str(e), duration=round(time.monotonic() - started, 2))

    categories = section.categories
    report = SyncReport(success=True, categories=len(categories))
    delay = _delay_seconds(context)
    logger.info(f"[Sync] Starting sync of {len(categories)} categories for {site_url}")

    for index, category in enumerate(categories):
        if index > 0:
            time.sleep(delay)

        try:
            result = sync_category(context, category.link, category.name, send_email=True)
        except Exception as e:
            # One broken category must not stop the others
            logger.exception(f"[Sync] Unexpected failure for {category.link}")
            result = CategorySyncResult(success=False, category_url=category.link, error=str(e))

        if not result.success:
            report.fail_count += 1
            report.failures.append(CategoryFailure(category=category.link, error=result.error or "Unknown error"))
            continue

        report.success_count += 1
        report.new_jobs += result.new_jobs_count
        report.jobs_in_db += result.total_in_db
        if result.is_new_post_list:
            report.new_post_lists += 1

    if report.new_jobs + report.new_post_lists > 0:
        report.cache_cleared = context.cache.clear()

    try:
        section.last_synced = datetime.now(timezone.utc)
        context.store.save_section(section)
    except SyncError as e:
        logger.warning(f"[Sync] Could not record last sync time: {e}")

    report.duration = round(time.monotonic() - started, 2)
    logger.info(
        f"[Sync] Done in {report.duration}s: {report.success_count} ok, {report.fail_count} failed, "
        f"{report.new_jobs} new jobs, {report.new_post_lists} new post lists, "
        f"cache cleared={report.cache_cleared}"
    )
    return report
