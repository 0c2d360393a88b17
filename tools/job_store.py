"""
Job Store — SQLite-backed document store with upsert-by-key semantics.
Documents are stored as JSON next to the indexed key columns they are looked up by.
"""

import json
import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterable, Iterator, Optional

from models.errors import PersistenceError
from models.job import CategoryPostList, DetailPost, SiteSection
from tools.url_canonicalizer import canonicalize, ensure_protocol, host_of, normalize_host, section_key


SCHEMA = """
CREATE TABLE IF NOT EXISTS sites (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    url TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS site_sections (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    url TEXT NOT NULL,
    host TEXT NOT NULL,
    doc TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_site_sections_host ON site_sections(host);
CREATE TABLE IF NOT EXISTS category_post_lists (
    url TEXT PRIMARY KEY,
    section TEXT NOT NULL,
    doc TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_post_lists_section ON category_post_lists(section);
CREATE TABLE IF NOT EXISTS detail_posts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    canonical_url TEXT UNIQUE NOT NULL,
    path TEXT,
    page_hash TEXT,
    content_signature TEXT,
    doc TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_detail_posts_path ON detail_posts(path);
CREATE INDEX IF NOT EXISTS idx_detail_posts_hash ON detail_posts(page_hash);
CREATE INDEX IF NOT EXISTS idx_detail_posts_signature ON detail_posts(content_signature);
CREATE TABLE IF NOT EXISTS subscribers (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    email TEXT UNIQUE NOT NULL,
    name TEXT,
    status TEXT NOT NULL DEFAULT 'active',
    created_at TEXT NOT NULL
);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class JobStore:
    """Persistence for sites, sections, category post lists, detail posts and subscribers."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Open a connection, commit on success and map sqlite errors to PersistenceError."""
        conn = None
        try:
            os.makedirs(os.path.dirname(os.path.abspath(self.db_path)), exist_ok=True)
            conn = sqlite3.connect(self.db_path, timeout=30)
            conn.row_factory = sqlite3.Row
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            if conn is not None:
                conn.rollback()
            raise PersistenceError(f"Store operation failed: {e}") from e
        finally:
            if conn is not None:
                conn.close()

    def init_db(self) -> None:
        """Create all tables if they don't exist."""
        with self._connection() as conn:
            conn.executescript(SCHEMA)

    # ── Sites ────────────────────────────────────────────────

    def add_site(self, url: str) -> None:
        with self._connection() as conn:
            conn.execute("INSERT INTO sites (url, created_at) VALUES (?, ?)", (url.strip(), _now()))

    def get_latest_site_url(self) -> Optional[str]:
        with self._connection() as conn:
            row = conn.execute("SELECT url FROM sites ORDER BY id DESC LIMIT 1").fetchone()
        return row["url"] if row else None

    # ── Site sections ────────────────────────────────────────

    def find_sections_by_host(self, host: str) -> list[SiteSection]:
        """All section documents for a host, oldest first (duplicates included)."""
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT id, doc FROM site_sections WHERE host = ? ORDER BY id",
                (normalize_host(host),),
            ).fetchall()

        sections = []
        for row in rows:
            section = SiteSection.model_validate(json.loads(row["doc"]))
            section.id = row["id"]
            sections.append(section)
        return sections

    def save_section(self, section: SiteSection) -> SiteSection:
        """Insert a new section or replace an existing one (by id)."""
        section.host = normalize_host(section.host or host_of(section.url))
        doc = json.dumps(section.to_document())
        with self._connection() as conn:
            if section.id is None:
                cursor = conn.execute(
                    "INSERT INTO site_sections (url, host, doc, updated_at) VALUES (?, ?, ?, ?)",
                    (section.url, section.host, doc, _now()),
                )
                section.id = cursor.lastrowid
            else:
                conn.execute(
                    "UPDATE site_sections SET url = ?, host = ?, doc = ?, updated_at = ? WHERE id = ?",
                    (section.url, section.host, doc, _now(), section.id),
                )
        return section

    def delete_sections(self, ids: Iterable[int]) -> int:
        ids = [i for i in ids if i is not None]
        if not ids:
            return 0
        placeholders = ",".join("?" for _ in ids)
        with self._connection() as conn:
            cursor = conn.execute(f"DELETE FROM site_sections WHERE id IN ({placeholders})", ids)
            return cursor.rowcount

    # ── Category post lists ──────────────────────────────────

    def find_post_list(self, url: str) -> Optional[CategoryPostList]:
        with self._connection() as conn:
            row = conn.execute("SELECT doc FROM category_post_lists WHERE url = ?", (url,)).fetchone()
        return CategoryPostList.model_validate(json.loads(row["doc"])) if row else None

    def upsert_post_list(self, post_list: CategoryPostList) -> None:
        """Replace the whole document in one statement so readers never see a partial merge."""
        doc = json.dumps(post_list.to_document())
        with self._connection() as conn:
            conn.execute(
                """
                INSERT INTO category_post_lists (url, section, doc, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(url) DO UPDATE SET
                    section = excluded.section,
                    doc = excluded.doc,
                    updated_at = excluded.updated_at
                """,
                (post_list.url, post_list.section, doc, _now()),
            )

    def find_post_lists_by_section(self, section_or_url: str) -> list[CategoryPostList]:
        """Post lists whose section path or category URL matches the given value."""
        raw = (section_or_url or "").strip()
        trimmed = raw.rstrip("/")
        candidates = {section_key(raw), raw, trimmed, f"{trimmed}/"}
        canonical = None if raw.startswith("/") else canonicalize(ensure_protocol(raw) or "")
        if canonical:
            candidates.add(canonical)
        placeholders = ",".join("?" for _ in candidates)
        values = list(candidates)
        with self._connection() as conn:
            rows = conn.execute(
                f"""
                SELECT doc FROM category_post_lists
                WHERE section IN ({placeholders}) OR url IN ({placeholders})
                ORDER BY updated_at DESC
                """,
                values + values,
            ).fetchall()
        return [CategoryPostList.model_validate(json.loads(r["doc"])) for r in rows]

    def count_jobs(self) -> int:
        """Total stored listing entries across all categories."""
        with self._connection() as conn:
            rows = conn.execute("SELECT doc FROM category_post_lists").fetchall()
        return sum(len(json.loads(r["doc"]).get("jobs", [])) for r in rows)

    # ── Detail posts ─────────────────────────────────────────

    def find_detail_post(
        self,
        canonical_url: Optional[str] = None,
        paths: Iterable[str] = (),
        page_hash: Optional[str] = None,
        content_signature: Optional[str] = None,
    ) -> Optional[DetailPost]:
        """First post matching any of the given identity keys."""
        clauses, values = [], []
        if canonical_url:
            clauses.append("canonical_url = ?")
            values.append(canonical_url)
        for path in [p for p in paths if p]:
            clauses.append("path = ?")
            values.append(path)
        if page_hash:
            clauses.append("page_hash = ?")
            values.append(page_hash)
        if content_signature:
            clauses.append("content_signature = ?")
            values.append(content_signature)
        if not clauses:
            return None

        with self._connection() as conn:
            row = conn.execute(
                f"SELECT id, doc FROM detail_posts WHERE {' OR '.join(clauses)} ORDER BY id LIMIT 1",
                values,
            ).fetchone()
        if row is None:
            return None
        post = DetailPost.model_validate(json.loads(row["doc"]))
        post.id = row["id"]
        return post

    def upsert_detail_post(self, post: DetailPost) -> DetailPost:
        """Update by id when known, else insert-or-replace keyed on canonical URL."""
        doc = json.dumps(post.to_document())
        key_values = (post.canonical_url, post.path, post.page_hash, post.content_signature, doc)
        with self._connection() as conn:
            if post.id is not None:
                conn.execute(
                    """
                    UPDATE detail_posts
                    SET canonical_url = ?, path = ?, page_hash = ?, content_signature = ?, doc = ?
                    WHERE id = ?
                    """,
                    key_values + (post.id,),
                )
            else:
                conn.execute(
                    """
                    INSERT INTO detail_posts (canonical_url, path, page_hash, content_signature, doc)
                    VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT(canonical_url) DO UPDATE SET
                        path = excluded.path,
                        page_hash = excluded.page_hash,
                        content_signature = excluded.content_signature,
                        doc = excluded.doc
                    """,
                    key_values,
                )
                row = conn.execute(
                    "SELECT id FROM detail_posts WHERE canonical_url = ?", (post.canonical_url,)
                ).fetchone()
                post.id = row["id"]
        return post

    # ── Subscribers ──────────────────────────────────────────

    def add_subscriber(self, email: str, name: str = "", status: str = "active") -> bool:
        """Insert a subscriber. Returns False when the email already exists."""
        with self._connection() as conn:
            cursor = conn.execute(
                "INSERT OR IGNORE INTO subscribers (email, name, status, created_at) VALUES (?, ?, ?, ?)",
                (email.strip().lower(), name.strip(), status, _now()),
            )
            return cursor.rowcount == 1

    def list_active_subscriber_emails(self) -> list[str]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT email FROM subscribers WHERE status = 'active' ORDER BY id"
            ).fetchall()
        return [r["email"] for r in rows]
