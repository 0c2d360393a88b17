"""
LangGraph Workflow — the category sync as a graph of stages.

Graph structure:
    scraper → merger → persister → detailer → notifier

scraper, merger and persister may record a fatal error; the run then ends
without reaching the next stage. detailer and notifier are best-effort.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

from langgraph.graph import StateGraph, END

from agents.dedup import merge_jobs
from agents.detail_sync import sync_detail_post
from agents.scraper import clamp, scrape_category_pages
from models.errors import FetchError, PersistenceError, SyncError
from models.job import CategoryPostList
from models.state import CategorySyncState
from tools.url_canonicalizer import section_key

logger = logging.getLogger(__name__)


def route_on_errors(state: CategorySyncState) -> str:
    """
    Conditional edge: stop the run once any stage recorded an error.

    Returns:
        'abort' if errors were recorded, 'continue' otherwise.
    """
    return "abort" if state.get("errors") else "continue"


def build_category_workflow(context):
    """
    Build and compile the category sync graph bound to a SyncContext.

    Returns:
        Compiled StateGraph ready to invoke.
    """
    settings = context.settings
    store = context.store

    def scraper_node(state: CategorySyncState) -> dict:
        url = state["category_url"]
        try:
            scrape = scrape_category_pages(
                url,
                context.fetch,
                max_pages=state["max_pages"],
                concurrency=settings.pagination_concurrency,
            )
        except FetchError as e:
            logger.error(f"[Scraper] {url}: {e}")
            return {"errors": [str(e)]}

        return {"scraped_jobs": scrape.jobs, "pages_visited": scrape.pages_visited}

    def merger_node(state: CategorySyncState) -> dict:
        try:
            existing = store.find_post_list(state["category_url"])
        except PersistenceError as e:
            logger.error(f"[Merger] {state['category_url']}: {e}")
            return {"errors": [str(e)]}

        now = datetime.now(timezone.utc)
        result = merge_jobs(existing.jobs if existing else [], state.get("scraped_jobs", []), now)
        return {
            "existing_list": existing,
            "merged_jobs": result.jobs,
            "new_jobs": result.new_jobs,
            "synced_at": now,
        }

    def persister_node(state: CategorySyncState) -> dict:
        existing = state.get("existing_list")
        name = state.get("category_name") or (existing.category_name if existing else "")
        post_list = CategoryPostList(
            url=state["category_url"],
            section=section_key(state["category_url"]),
            category_name=name,
            jobs=state["merged_jobs"],
            last_scraped=state["synced_at"],
        )
        try:
            store.upsert_post_list(post_list)
        except PersistenceError as e:
            logger.error(f"[Persister] {state['category_url']}: {e}")
            return {"errors": [str(e)], "persisted": False}
        return {"persisted": True}

    def detailer_node(state: CategorySyncState) -> dict:
        new_jobs = state.get("new_jobs", [])
        if not state.get("scrape_details") or not new_jobs:
            return {"details_synced": 0}

        workers = clamp(settings.detail_concurrency, 1, 8)
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(lambda job: _sync_detail_safely(job.link, context), new_jobs))

        synced = sum(1 for r in results if r.get("success"))
        logger.info(f"[Detailer] {synced}/{len(new_jobs)} detail page(s) synced")
        return {"details_synced": synced}

    def notifier_node(state: CategorySyncState) -> dict:
        new_jobs = state.get("new_jobs", [])
        if not state.get("send_email") or not new_jobs:
            return {"notified": False}

        name = state.get("category_name") or "New posts"
        try:
            sent = context.mailer.send_new_posts_email(new_jobs, name, state["category_url"])
        except SyncError as e:
            # Post list is already persisted
            logger.error(f"[Notifier] {e}")
            return {"notified": False}
        return {"notified": sent}

    workflow = StateGraph(CategorySyncState)

    workflow.add_node("scraper", scraper_node)
    workflow.add_node("merger", merger_node)
    workflow.add_node("persister", persister_node)
    workflow.add_node("detailer", detailer_node)
    workflow.add_node("notifier", notifier_node)

    workflow.set_entry_point("scraper")

    workflow.add_conditional_edges("scraper", route_on_errors, {"continue": "merger", "abort": END})
    workflow.add_conditional_edges("merger", route_on_errors, {"continue": "persister", "abort": END})
    workflow.add_conditional_edges("persister", route_on_errors, {"continue": "detailer", "abort": END})
    workflow.add_edge("detailer", "notifier")
    workflow.add_edge("notifier", END)

    return workflow.compile()


def _sync_detail_safely(url: str, context) -> dict:
    try:
        return sync_detail_post(url, context)
    except Exception as e:
        # A broken detail page never fails the category
        logger.warning(f"[Detailer] {url}: {e}")
        return {"success": False, "error": str(e)}
