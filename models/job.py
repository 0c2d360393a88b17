"""
Job data models — listing entries, per-category post lists, site sections and
detail posts. Field aliases match the persisted camelCase document shape.
"""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class StoredModel(BaseModel):
    """Base for documents persisted in the store (camelCase on disk)."""

    model_config = ConfigDict(populate_by_name=True)

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class JobListingEntry(StoredModel):
    """A lightweight job record discovered on a category/listing page."""

    title: str = Field(description="Human-readable job title (anchor text)")
    link: str = Field(description="Absolute URL as scraped")
    canonical_link: str = Field(default="", alias="canonicalLink", description="Identity URL")
    publish_date: Optional[datetime] = Field(default=None, alias="publishDate")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")


class Category(StoredModel):
    """A category link discovered on the site root (menu or sitemap)."""

    name: str = Field(default="", description="Category label, 'Auto' when unnamed")
    link: str = Field(description="Absolute category URL")


class CategoryPostList(StoredModel):
    """All jobs ever seen on one category page, merged across scrape passes."""

    url: str = Field(description="Canonical category URL (unique)")
    section: str = Field(default="/", description="Path-derived grouping key")
    category_name: str = Field(default="", alias="categoryName")
    jobs: list[JobListingEntry] = Field(default_factory=list)
    last_scraped: Optional[datetime] = Field(default=None, alias="lastScraped")


class SiteSection(StoredModel):
    """Per-host record of all discovered categories."""

    id: Optional[int] = Field(default=None, exclude=True)
    url: str = Field(description="Site root URL")
    host: str = Field(default="", description="Normalized host (no www.)")
    categories: list[Category] = Field(default_factory=list)
    last_synced: Optional[datetime] = Field(default=None, alias="lastSynced")


class DetailPost(StoredModel):
    """
    One job detail page. The structured recruitment payload is opaque here;
    only the identity fields, the page hash and importantDates are read.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: Optional[int] = Field(default=None, exclude=True)
    canonical_url: str = Field(alias="canonicalUrl")
    path: str = Field(default="/")
    source_url_full: str = Field(default="", alias="sourceUrlFull")
    url: str = Field(default="", description="Path-only URL kept for older readers")
    title: str = Field(default="")
    page_hash: str = Field(default="", alias="pageHash")
    content_signature: Optional[str] = Field(default=None, alias="contentSignature")
    recruitment: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    @property
    def important_dates(self) -> dict[str, Any]:
        dates = self.recruitment.get("importantDates")
        return dates if isinstance(dates, dict) else {}
