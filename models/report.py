"""
Result shapes returned by the category and site-wide sync operations.
These are the JSON contracts of the trigger endpoints.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from models.job import JobListingEntry


class CategorySyncResult(BaseModel):
    """Outcome of one category sync pass."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    category_url: str = Field(alias="categoryUrl")
    category_name: str = Field(default="", alias="categoryName")
    count: int = 0
    new_jobs_count: int = Field(default=0, alias="newJobsCount")
    total_in_db: int = Field(default=0, alias="totalInDB")
    is_new_post_list: bool = Field(default=False, alias="isNewPostList")
    pages_visited: int = Field(default=0, alias="pagesVisited")
    jobs: list[JobListingEntry] = Field(default_factory=list)
    new_jobs: list[JobListingEntry] = Field(default_factory=list, alias="newJobs")
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class CategoryFailure(BaseModel):
    category: str
    error: str


class SyncReport(BaseModel):
    """Aggregate report of a site-wide sync run."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    categories: int = 0
    new_jobs: int = Field(default=0, alias="newJobs")
    new_post_lists: int = Field(default=0, alias="newPostLists")
    jobs_in_db: int = Field(default=0, alias="jobsInDb")
    cache_cleared: bool = Field(default=False, alias="cacheCleared")
    success_count: int = Field(default=0, alias="successCount")
    fail_count: int = Field(default=0, alias="failCount")
    failures: list[CategoryFailure] = Field(default_factory=list)
    duration: float = 0.0
    error: Optional[str] = None

    def to_dict(self) -> dict:
        if not self.success:
            # Configuration errors carry no partial aggregate
            return {"success": False, "error": self.error, "duration": self.duration}
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
