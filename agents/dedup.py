"""
Dedup Agent — identity keys and the merge of a scrape pass into the stored
job list of a category. Deterministic, no LLM needed.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

from models.job import JobListingEntry
from tools.url_canonicalizer import canonicalize_or_trim


def normalize_title_key(title: str) -> str:
    """Lowercase, punctuation stripped, whitespace collapsed."""
    text = re.sub(r"\s+", " ", title or "").strip().lower()
    text = re.sub(r"[^a-z0-9 ]+", " ", text)
    return re.sub(r"\s+", " ", text).strip()


def link_key(job: JobListingEntry) -> str:
    return job.canonical_link or canonicalize_or_trim(job.link)


def identity_key(job: JobListingEntry) -> str:
    """Composite key: canonical link + '::' + normalized title."""
    return f"{link_key(job)}::{normalize_title_key(job.title)}"


def dedupe_by_identity(jobs: Iterable[JobListingEntry]) -> dict[str, JobListingEntry]:
    """Key a batch by identity; a later duplicate replaces an earlier one."""
    keyed: dict[str, JobListingEntry] = {}
    for job in jobs:
        keyed[identity_key(job)] = job
    return keyed


def _best_publish_date(
    incoming: JobListingEntry,
    previous: Optional[JobListingEntry],
    now: datetime,
) -> datetime:
    """Incoming publish/update date > incoming created date > stored date > now."""
    candidates = [incoming.publish_date, incoming.updated_at, incoming.created_at]
    if previous is not None:
        candidates += [previous.publish_date, previous.updated_at, previous.created_at]
    return next((d for d in candidates if d is not None), now)


@dataclass
class MergeResult:
    """Outcome of merging one scrape pass into the stored list."""

    jobs: list[JobListingEntry] = field(default_factory=list)
    new_jobs: list[JobListingEntry] = field(default_factory=list)
    updated_count: int = 0


def merge_jobs(
    previous: Iterable[JobListingEntry],
    incoming: Iterable[JobListingEntry],
    now: datetime,
) -> MergeResult:
    """
    Merge a scrape pass into the stored entries of one category.

    - Stored entries are never dropped; a job missing from this pass is retained.
    - A recurring identity key refreshes updatedAt/publishDate, never createdAt.
    - New keys become new entries with createdAt = updatedAt = now.

    new_jobs is computed from the same identity keys before anything is merged,
    so a job is either new or an update, never both and never lost.
    """
    stored = dedupe_by_identity(previous)
    candidates = dedupe_by_identity(incoming)

    new_keys = [key for key in candidates if key not in stored]

    merged: dict[str, JobListingEntry] = {}
    new_jobs: list[JobListingEntry] = []
    for key in new_keys:
        job = candidates[key]
        entry = job.model_copy(update={
            "canonical_link": link_key(job),
            "created_at": now,
            "updated_at": now,
            "publish_date": _best_publish_date(job, None, now),
        })
        merged[key] = entry
        new_jobs.append(entry)

    updated_count = 0
    for key, prev in stored.items():
        job = candidates.get(key)
        if job is None:
            merged[key] = prev.model_copy(update={"canonical_link": link_key(prev)})
            continue

        updated_count += 1
        merged[key] = prev.model_copy(update={
            "title": job.title,
            "link": job.link,
            "canonical_link": link_key(job),
            "created_at": prev.created_at or now,
            "updated_at": now,
            "publish_date": _best_publish_date(job, prev, now),
        })

    return MergeResult(jobs=list(merged.values()), new_jobs=new_jobs, updated_count=updated_count)
