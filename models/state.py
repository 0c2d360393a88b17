"""
LangGraph Agent State — shared state that flows through the category sync graph.
"""

from datetime import datetime
from typing import Annotated, Optional, TypedDict

from models.job import CategoryPostList, JobListingEntry


def merge_lists(left: list, right: list) -> list:
    """Reducer that merges two lists (used for accumulating errors across nodes)."""
    return left + right


class CategorySyncState(TypedDict, total=False):
    """
    Shared state for one category sync.
    Each node reads from and writes to this state.
    """

    # Input
    category_url: str
    category_name: str
    max_pages: int
    send_email: bool
    scrape_details: bool

    # Scraper output
    scraped_jobs: list[JobListingEntry]
    pages_visited: int

    # Merger output
    existing_list: Optional[CategoryPostList]
    merged_jobs: list[JobListingEntry]
    new_jobs: list[JobListingEntry]
    synced_at: datetime

    # Side effects
    persisted: bool
    details_synced: int
    notified: bool

    # Fatal errors; any entry ends the run before the next stage
    errors: Annotated[list[str], merge_lists]
