"""
URL Canonicalizer — turns scraped URLs into stable identity keys.
Pure functions, no I/O.
"""

import re
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit


# Marketing/tracking query keys that never identify a post
TRACKING_KEYS = {
    "fbclid",
    "gclid",
    "igshid",
    "mc_cid",
    "mc_eid",
    "ref",
    "ref_src",
    "source",
}

# Query keys that identify a post (e.g. WordPress ?p=123)
IMPORTANT_KEYS = {"p", "post", "post_id", "id", "job", "vacancy", "pid"}


def _is_tracking_key(key: str) -> bool:
    key = key.lower()
    return key.startswith("utm_") or key in TRACKING_KEYS


def normalize_host(host: str) -> str:
    """Lowercase a host and drop a leading 'www.'."""
    return re.sub(r"^www\.", "", (host or "").strip().lower())


def ensure_protocol(raw_url: str) -> Optional[str]:
    """Prefix https:// when a configured URL has no scheme."""
    if not raw_url or not raw_url.strip():
        return None
    url = raw_url.strip()
    if not url.startswith(("http://", "https://")):
        url = "https://" + url.lstrip("/")
    return url


def _clean_query(query: str) -> str:
    if not query:
        return ""

    pairs = parse_qsl(query, keep_blank_values=True)
    kept = [(k, v) for k, v in pairs if not _is_tracking_key(k)]
    has_important = any(k.lower() in IMPORTANT_KEYS for k, _ in kept)

    if not kept and not has_important:
        return ""
    if len(kept) == len(pairs):
        return query
    return urlencode(kept)


def canonicalize(raw_url: str, base_url: Optional[str] = None) -> Optional[str]:
    """
    Normalize a URL into its canonical identity form.

    Args:
        raw_url: Absolute URL, or a relative one when base_url is given.
        base_url: Optional base used to resolve relative input.

    Returns:
        "scheme://host/path?query" without fragment, 'www.' or trailing slash,
        or None when the input cannot be parsed into an absolute http(s) URL.
    """
    if not raw_url or not raw_url.strip():
        return None

    try:
        url = raw_url.strip()
        if base_url:
            url = urljoin(base_url, url)
        parts = urlsplit(url)
        host = parts.hostname
        port = parts.port
    except ValueError:
        return None

    if parts.scheme not in ("http", "https") or not host:
        return None

    netloc = normalize_host(host)
    if port:
        netloc = f"{netloc}:{port}"

    path = parts.path.rstrip("/") or "/"
    query = _clean_query(parts.query)

    canonical = f"{parts.scheme}://{netloc}{path}"
    if query:
        canonical += f"?{query}"
    return canonical


def canonicalize_or_trim(raw_url: str) -> str:
    """Canonical form, degrading to the fragment-stripped input."""
    return canonicalize(raw_url) or (raw_url or "").split("#")[0].strip()


def normalize_path(raw_url: str) -> Optional[str]:
    """
    Path-only form for matching records that store only a path.
    Drops scheme/host/query/fragment, forces one leading slash and removes
    one trailing slash (except for the root).
    """
    if not raw_url or not raw_url.strip():
        return None

    url = raw_url.strip().split("#")[0].split("?")[0]
    if url.startswith(("http://", "https://")):
        try:
            url = urlsplit(url).path
        except ValueError:
            pass

    if not url.startswith("/"):
        url = "/" + url
    if len(url) > 1 and url.endswith("/"):
        url = url[:-1]
    return url


def section_key(category_url: str) -> str:
    """Grouping key for a category: its path without trailing slashes."""
    raw = (category_url or "").strip()
    if raw.startswith("/"):
        path = raw.split("#")[0].split("?")[0]
    else:
        try:
            path = urlsplit(ensure_protocol(raw) or "").path
        except ValueError:
            path = raw
    return path.rstrip("/") or "/"


def host_of(url: str) -> str:
    """Normalized host of a URL, empty string when unparseable."""
    try:
        return normalize_host(urlsplit(url or "").hostname or "")
    except ValueError:
        return ""
