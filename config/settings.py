"""
Configuration settings for the govjob-sync service.
Loads values from .env file and provides typed access.
"""

import json
import os
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Determine project root
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
env_path = os.path.join(project_root, ".env")
load_dotenv(env_path)


def _load_ai_providers() -> list[dict]:
    """
    Read the LLM provider list.

    AI_PROVIDERS holds a JSON list of {name, base_url, api_key, model}. Without it
    a single provider is built from the LLM_* variables.
    """
    raw = os.getenv("AI_PROVIDERS", "").strip()
    if raw:
        providers = json.loads(raw)
        return [p for p in providers if isinstance(p, dict) and p.get("model")]

    base_url = os.getenv("LLM_BASE_URL", "")
    if not base_url:
        return []
    return [{
        "name": os.getenv("LLM_PROVIDER_NAME", "default"),
        "base_url": base_url,
        "api_key": os.getenv("LLM_API_KEY", "not-needed"),
        "model": os.getenv("LLM_MODEL_NAME", "qwen3-8b"),
    }]


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    # Target site
    site_url: str = field(
        default_factory=lambda: os.getenv("SITE_URL", "")
    )

    # Storage
    db_path: str = field(
        default_factory=lambda: os.getenv(
            "DB_PATH", os.path.join(project_root, "data", "govjob_sync.db")
        )
    )

    # Scraping Configuration
    request_timeout: int = field(
        default_factory=lambda: int(os.getenv("REQUEST_TIMEOUT", "20"))
    )
    category_delay_ms: int = field(
        default_factory=lambda: int(os.getenv("CATEGORY_DELAY_MS", "500"))
    )
    category_max_pages: int = field(
        default_factory=lambda: int(os.getenv("CATEGORY_MAX_PAGES", "20"))
    )
    pagination_concurrency: int = field(
        default_factory=lambda: int(os.getenv("PAGINATION_CONCURRENCY", "3"))
    )
    max_requests_per_host: int = field(
        default_factory=lambda: int(os.getenv("MAX_REQUESTS_PER_HOST", "2"))
    )
    scrape_details: bool = field(
        default_factory=lambda: os.getenv("SCRAPE_DETAILS", "false").lower() == "true"
    )
    detail_concurrency: int = field(
        default_factory=lambda: int(os.getenv("DETAIL_CONCURRENCY", "4"))
    )

    # Scheduler
    sync_interval_hours: int = field(
        default_factory=lambda: int(os.getenv("SYNC_INTERVAL_HOURS", "2"))
    )
    scheduler_timezone: str = field(
        default_factory=lambda: os.getenv("SCHEDULER_TIMEZONE", "Asia/Kolkata")
    )

    # Email Notifications
    smtp_host: str = field(
        default_factory=lambda: os.getenv("SMTP_HOST", "smtp.gmail.com")
    )
    smtp_port: int = field(
        default_factory=lambda: int(os.getenv("SMTP_PORT", "587"))
    )
    smtp_user: str = field(
        default_factory=lambda: os.getenv("SMTP_USER", "").strip()
    )
    smtp_password: str = field(
        default_factory=lambda: os.getenv("SMTP_PASSWORD", "").replace(" ", "")
    )
    mail_from: str = field(
        default_factory=lambda: os.getenv("MAIL_FROM", "").strip()
    )
    notify_to: str = field(
        default_factory=lambda: os.getenv("NOTIFY_TO", "")
    )

    # Front-end cache invalidation
    cache_clear_url: str = field(
        default_factory=lambda: os.getenv("CACHE_CLEAR_URL", "")
    )

    # LLM Configuration (structured extraction)
    ai_providers: list = field(default_factory=_load_ai_providers)
    llm_temperature: float = field(
        default_factory=lambda: float(os.getenv("LLM_TEMPERATURE", "0.1"))
    )
    llm_max_tokens: int = field(
        default_factory=lambda: int(os.getenv("LLM_MAX_TOKENS", "2048"))
    )

    # HTTP server
    server_host: str = field(
        default_factory=lambda: os.getenv("SERVER_HOST", "0.0.0.0")
    )
    server_port: int = field(
        default_factory=lambda: int(os.getenv("PORT", "5000"))
    )

    # Paths
    output_dir: str = field(
        default_factory=lambda: os.getenv("OUTPUT_DIR", "output")
    )

    @property
    def operator_emails(self) -> list[str]:
        """Static operator recipients from NOTIFY_TO (comma separated)."""
        return [e.strip() for e in self.notify_to.split(",") if e.strip()]


# Singleton instance
settings = Settings()
