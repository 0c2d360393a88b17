"""
Change Detector — content fingerprint of a detail page and regex-derived
"update signals" for recruitment date fields.

The signal scan is a heuristic over free text: first match per field wins and
there is no per-field confidence. It is best-effort and fails open.
"""

import hashlib
import logging
import re

from bs4 import BeautifulSoup

from models.job import DetailPost
from tools.text_extractor import clean_text, visible_text

logger = logging.getLogger(__name__)


# Ordered (field key, pattern) pairs. The last group of each match is the value.
UPDATE_SIGNALS = [
    ("examDate", re.compile(r"exam\s*date\s*[:\-]?\s*(.+)", re.IGNORECASE)),
    ("resultDate", re.compile(r"result\s*(date|declared|released)\s*[:\-]?\s*(.+)", re.IGNORECASE)),
    ("admitCardDate", re.compile(r"admit\s*card\s*(date|released)\s*[:\-]?\s*(.+)", re.IGNORECASE)),
    ("answerKeyReleaseDate", re.compile(r"answer\s*key\s*(date|released)\s*[:\-]?\s*(.+)", re.IGNORECASE)),
    ("correctionDate", re.compile(r"correction\s*(date|window)\s*[:\-]?\s*(.+)", re.IGNORECASE)),
    ("applicationLastDate", re.compile(r"(last|closing)\s*date\s*[:\-]?\s*(.+)", re.IGNORECASE)),
]

# Page timestamps that change without the content changing
UPDATED_STAMP_PATTERNS = [
    re.compile(r"last\s*updated\s*[:\-]?\s*\w.*", re.IGNORECASE),
    re.compile(r"updated\s*on\s*[:\-]?\s*\w.*", re.IGNORECASE),
]

# Placeholders that are never a real value
SENTINEL_VALUES = {
    "notify later",
    "will be updated",
    "available soon",
    "to be announced",
    "tba",
    "na",
    "n/a",
}


def normalize_semantic(value) -> str:
    """Case/whitespace-insensitive comparison form of a field value."""
    text = clean_text(str(value or "")).replace(",", "")
    return text.lower().strip(" .:;-")


def compute_stable_hash(soup: BeautifulSoup) -> str:
    """
    MD5 over the whitespace-collapsed text of every <table>, <p> and <li> in
    document order. Scripts/styles must already be stripped by the caller.
    "Updated on ..." / "Last updated ..." stamps are dropped from each element
    so a bumped timestamp alone does not change the hash.
    """
    root = soup.body or soup
    parts = []
    for el in root.find_all(["table", "p", "li"]):
        text = clean_text(el.get_text(" "))
        for pattern in UPDATED_STAMP_PATTERNS:
            text = pattern.sub("", text)
        parts.append(text.strip())
    text = " ".join(p for p in parts if p)
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def _is_sentinel(normalized: str) -> bool:
    return not normalized or normalized in SENTINEL_VALUES


def detect_update_signals(soup: BeautifulSoup, existing: DetailPost) -> dict[str, str]:
    """
    Scan the page body for recognized date fields whose value changed.

    Args:
        soup: Parsed detail page.
        existing: The stored post; its recruitment.importantDates are the old values.

    Returns:
        {field_key: new_value} for fields whose normalized value differs from the
        stored one. Empty and sentinel values are never returned.
    """
    try:
        text = visible_text(soup)
        old_dates = existing.important_dates
        updates: dict[str, str] = {}

        for key, pattern in UPDATE_SIGNALS:
            match = pattern.search(text)
            if not match:
                continue

            new_value = clean_text(match.groups()[-1])
            normalized = normalize_semantic(new_value)
            if _is_sentinel(normalized):
                continue

            if normalize_semantic(old_dates.get(key, "")) != normalized:
                updates[key] = new_value

        return updates
    except (re.error, AttributeError, TypeError) as e:
        logger.warning(f"[ChangeDetector] Skipping update detection for {existing.canonical_url}: {e}")
        return {}
