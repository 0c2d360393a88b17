"""
Detail Sync Agent — scrapes one job detail page into a DetailPost.

Known pages are only re-hashed and, when the hash moved, patched with the
date fields the change detector recognizes. Unknown pages go through the
structured-extraction service; a page whose content matches an existing post
(a mirror under another URL) patches that post instead of adding a duplicate.
"""

import hashlib
import json
import logging
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urljoin

from models.errors import FetchError, StructuringError
from models.job import DetailPost
from tools.change_detector import compute_stable_hash, detect_update_signals
from tools.text_extractor import extract_page_data, load_document, minify_for_llm
from tools.url_canonicalizer import canonicalize, normalize_path

logger = logging.getLogger(__name__)


EXISTING_UNCHANGED = "EXISTING_UNCHANGED"
EXISTING_UPDATED = "EXISTING_UPDATED"
CREATED_MINIMAL = "CREATED_MINIMAL"
CREATED_NEW = "CREATED_NEW"
PATCHED_EXISTING = "PATCHED_EXISTING"

SIGNATURE_FIELDS = ("organization", "advertisementNumber", "vacancyDetails", "importantDates")


def _drop_empty(value):
    if isinstance(value, dict):
        cleaned = {k: _drop_empty(v) for k, v in value.items()}
        return {k: v for k, v in cleaned.items() if v not in (None, "", [], {})}
    if isinstance(value, list):
        cleaned = [_drop_empty(v) for v in value]
        return [v for v in cleaned if v not in (None, "", [], {})]
    return value


def _lowercase(value):
    if isinstance(value, dict):
        return {k: _lowercase(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_lowercase(v) for v in value]
    if isinstance(value, str):
        return value.strip().lower()
    return value


def build_content_signature(recruitment: dict) -> Optional[str]:
    """
    md5 of the identifying recruitment fields, key-sorted and lowercased.
    The title is excluded so re-titled mirrors still match.
    """
    core = {key: recruitment.get(key) for key in SIGNATURE_FIELDS}
    core = _lowercase(_drop_empty(core))
    if not core:
        return None
    payload = json.dumps(core, sort_keys=True, ensure_ascii=False)
    return hashlib.md5(payload.encode("utf-8")).hexdigest()


def _fallback_title(page_data: dict) -> str:
    h1 = page_data["headings"].get("h1") or []
    return next((h for h in h1 if h), "") or page_data.get("title") or "Untitled post"


def _absolute_url(url: str, context) -> str:
    url = (url or "").strip()
    if url.startswith("/"):
        return urljoin(context.site_root(), url)
    return url


def sync_detail_post(url: str, context) -> dict:
    """
    Scrape one detail page and store or update its DetailPost.

    Returns:
        {"success", "action", "updates", "data"} on success, or
        {"success": False, "error"} when the URL is invalid or the fetch failed.
    """
    job_url = _absolute_url(url, context)
    canonical_url = canonicalize(job_url)
    path = normalize_path(job_url)
    if not canonical_url or not path:
        return {"success": False, "error": f"Invalid URL: {url!r}"}

    try:
        html = context.fetch(job_url)
    except FetchError as e:
        logger.warning(f"[Detail] Fetch failed: {job_url} ({e})")
        return {"success": False, "error": str(e)}

    soup = load_document(html)
    page_hash = compute_stable_hash(soup)
    now = datetime.now(timezone.utc)
    store = context.store

    existing = store.find_detail_post(
        canonical_url=canonical_url,
        paths=[path, path + "/"] if path != "/" else [path],
        page_hash=page_hash,
    )

    if existing is not None:
        updates: dict[str, str] = {}
        existing.source_url_full = job_url
        existing.updated_at = now
        if existing.page_hash == page_hash:
            action = EXISTING_UNCHANGED
        else:
            updates = detect_update_signals(soup, existing)
            if updates:
                dates = {**existing.important_dates, **updates}
                existing.recruitment = {**existing.recruitment, "importantDates": dates}
            existing.page_hash = page_hash
            action = EXISTING_UPDATED
        store.upsert_detail_post(existing)
        logger.info(f"[Detail] {action}: {canonical_url} ({len(updates)} field(s) updated)")
        return {"success": True, "action": action, "updates": updates, "data": existing.to_document()}

    page_data = extract_page_data(soup, job_url)

    try:
        structured = context.structurer.extract(minify_for_llm(page_data))
    except StructuringError as e:
        logger.warning(f"[Detail] Structured extraction failed, storing minimal record: {e}")
        post = DetailPost(
            canonical_url=canonical_url,
            path=path,
            source_url_full=job_url,
            url=path,
            title=page_data["title"],
            page_hash=page_hash,
            recruitment={"title": _fallback_title(page_data)},
            created_at=now,
            updated_at=now,
        )
        store.upsert_detail_post(post)
        return {"success": True, "action": CREATED_MINIMAL, "updates": {}, "data": post.to_document()}

    recruitment = structured["recruitment"]
    signature = build_content_signature(recruitment)

    mirror = store.find_detail_post(content_signature=signature) if signature else None
    if mirror is not None:
        mirror.recruitment = recruitment
        mirror.page_hash = page_hash
        mirror.source_url_full = job_url
        mirror.updated_at = now
        store.upsert_detail_post(mirror)
        logger.info(f"[Detail] {PATCHED_EXISTING}: {canonical_url} matches {mirror.canonical_url}")
        return {"success": True, "action": PATCHED_EXISTING, "updates": {}, "data": mirror.to_document()}

    post = DetailPost(
        canonical_url=canonical_url,
        path=path,
        source_url_full=job_url,
        url=path,
        title=page_data["title"],
        page_hash=page_hash,
        content_signature=signature,
        recruitment=recruitment,
        created_at=now,
        updated_at=now,
    )
    store.upsert_detail_post(post)
    logger.info(f"[Detail] {CREATED_NEW}: {canonical_url}")
    return {"success": True, "action": CREATED_NEW, "updates": {}, "data": post.to_document()}
