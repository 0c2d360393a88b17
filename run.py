"""
GovJob Sync — category scraping and dedup pipeline for a job-listing site.
CLI entry point: API server with scheduler, one-off syncs, discovery and seeding.
"""

import argparse
import json
import logging
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config.context import SyncContext
from config.settings import settings
from models.errors import SyncError
from models.job import Category, SiteSection
from tools.file_handler import load_site_config, save_to_json

logger = logging.getLogger("govjob_sync")


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def cmd_serve(context: SyncContext, args) -> int:
    from agents.site_sync import sync_categories_and_jobs
    from api.app import create_app
    from tools.scheduler import SyncScheduler

    scheduler = None
    if not args.no_scheduler:
        scheduler = SyncScheduler(
            lambda: sync_categories_and_jobs(context),
            interval_hours=settings.sync_interval_hours,
            timezone=settings.scheduler_timezone,
        )
        scheduler.start()

    app = create_app(context)
    try:
        app.run(host=args.host or settings.server_host, port=args.port or settings.server_port)
    finally:
        if scheduler:
            scheduler.stop()
    return 0


def cmd_sync(context: SyncContext, args) -> int:
    from agents.site_sync import sync_categories_and_jobs

    report = sync_categories_and_jobs(context)
    result = report.to_dict()
    path = save_to_json(result, args.output_dir or settings.output_dir)
    logger.info(f"Report saved to {path}")

    if not report.success:
        logger.error(f"Sync failed: {report.error}")
        return 1
    for failure in report.failures:
        logger.warning(f"  - {failure.category}: {failure.error}")
    return 0


def cmd_sync_category(context: SyncContext, args) -> int:
    from agents.category_sync import sync_category

    result = sync_category(
        context,
        args.url,
        category_name=args.name or "",
        max_pages=args.max_pages,
        send_email=not args.no_email,
    )
    summary = result.to_dict()
    summary.pop("jobs", None)
    print(json.dumps(summary, indent=2, default=str))
    return 0 if result.success else 1


def cmd_discover(context: SyncContext, args) -> int:
    from agents.category_discovery import discover_categories

    result = discover_categories(context)
    print(json.dumps(result, indent=2, default=str))
    return 0 if result.get("success") else 1


def cmd_seed(context: SyncContext, args) -> int:
    from agents.site_sync import consolidate_sections, union_categories
    from tools.url_canonicalizer import canonicalize, ensure_protocol, host_of

    if not os.path.exists(args.config):
        logger.error(f"Config file not found: {args.config}")
        return 1

    config = load_site_config(args.config)
    site_url = canonicalize(ensure_protocol(config["site_url"]) or "")
    if not site_url:
        logger.error("Seed config has no valid site.url")
        return 1

    store = context.store
    store.add_site(site_url)

    section = consolidate_sections(context, site_url) or SiteSection(url=site_url, host=host_of(site_url))
    seeded = [Category(**c) for c in config["categories"]]
    section.categories = union_categories(section.categories, seeded)
    store.save_section(section)

    added = sum(store.add_subscriber(s["email"], s["name"]) for s in config["subscribers"])
    logger.info(
        f"Seeded {site_url}: {len(section.categories)} categories, {added} new subscriber(s)"
    )
    return 0


def main():
    """Main entry point for the sync service."""
    parser = argparse.ArgumentParser(
        description="GovJob Sync — category scraping and dedup pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run.py seed --config config/sites.yaml
  python run.py discover
  python run.py sync
  python run.py sync-category https://example.com/category/latest-jobs --max-pages 5
  python run.py serve --port 5000
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API and the periodic sync")
    serve.add_argument("--host", default=None, help=f"Bind address (default: {settings.server_host})")
    serve.add_argument("--port", type=int, default=None, help=f"Port (default: {settings.server_port})")
    serve.add_argument("--no-scheduler", action="store_true", help="Only serve the API")
    serve.set_defaults(func=cmd_serve)

    sync = sub.add_parser("sync", help="Run one site-wide sync and save the report")
    sync.add_argument("--output-dir", default=None, help=f"Report directory (default: {settings.output_dir})")
    sync.set_defaults(func=cmd_sync)

    one = sub.add_parser("sync-category", help="Sync a single category URL")
    one.add_argument("url", help="Category listing URL")
    one.add_argument("--name", default="", help="Category display name")
    one.add_argument("--max-pages", type=int, default=None, help="Pagination cap (1-80)")
    one.add_argument("--no-email", action="store_true", help="Do not notify subscribers")
    one.set_defaults(func=cmd_sync_category)

    discover = sub.add_parser("discover", help="Discover categories from the site menu and sitemap")
    discover.set_defaults(func=cmd_discover)

    seed = sub.add_parser("seed", help="Seed site, categories and subscribers from YAML")
    seed.add_argument("--config", default="config/sites.yaml", help="Path to the seed YAML")
    seed.set_defaults(func=cmd_seed)

    args = parser.parse_args()
    setup_logging(args.verbose)

    context = SyncContext(settings).init()
    try:
        sys.exit(args.func(context, args))
    except SyncError as e:
        logger.error(f"{type(e).__name__}: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
        sys.exit(1)
    finally:
        context.close()


if __name__ == "__main__":
    main()
