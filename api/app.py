"""
Flask API — on-demand triggers for the sync pipeline and the post list read
endpoint the front end uses.

Endpoints:
  POST /api/v1/sync-categories    site-wide sync report (always HTTP 200)
  POST /api/v1/scrape-category    {url, name?, maxPages?, sendEmail?}
  POST /api/v1/get-categories     discover and store the site's categories
  POST /api/v1/scrape-complete    {url} scrape one detail post
  GET  /api/v1/postlist?url=      stored post lists for a section or category
"""

import logging

from flask import Flask, jsonify, request

from agents.category_discovery import discover_categories
from agents.category_sync import sync_category
from agents.detail_sync import sync_detail_post
from agents.site_sync import sync_categories_and_jobs
from models.errors import SyncError

logger = logging.getLogger(__name__)


def _json_body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _as_bool(value, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return bool(value)


def _job_with_display_date(job: dict) -> dict:
    job = dict(job)
    job["publishDate"] = job.get("publishDate") or job.get("updatedAt") or job.get("createdAt")
    return job


def create_app(context) -> Flask:
    """Build the Flask app bound to an initialized SyncContext."""
    app = Flask(__name__)

    @app.after_request
    def add_cors_headers(response):
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        return response

    @app.route("/api/v1/sync-categories", methods=["POST"])
    def sync_categories():
        # Callers inspect success/failures in the body; the status is always 200
        report = sync_categories_and_jobs(context)
        return jsonify(report.to_dict()), 200

    @app.route("/api/v1/scrape-category", methods=["POST"])
    def scrape_category():
        body = _json_body()
        url = str(body.get("url") or "").strip()
        if not url:
            return jsonify({"success": False, "error": "Category URL is required"}), 400

        try:
            max_pages = int(body["maxPages"]) if body.get("maxPages") is not None else None
        except (TypeError, ValueError):
            return jsonify({"success": False, "error": "maxPages must be a number"}), 400

        result = sync_category(
            context,
            url,
            category_name=str(body.get("name") or ""),
            max_pages=max_pages,
            send_email=_as_bool(body.get("sendEmail"), True),
        )
        return jsonify(result.to_dict()), (200 if result.success else 500)

    @app.route("/api/v1/get-categories", methods=["POST"])
    def get_categories():
        try:
            result = discover_categories(context)
        except SyncError as e:
            return jsonify({"success": False, "error": str(e)}), 200
        return jsonify(result), 200

    @app.route("/api/v1/scrape-complete", methods=["POST"])
    def scrape_complete():
        url = str(_json_body().get("url") or "").strip()
        if not url:
            return jsonify({"success": False, "error": "Post URL is required"}), 400

        try:
            result = sync_detail_post(url, context)
        except SyncError as e:
            logger.error(f"[API] scrape-complete failed for {url}: {e}")
            return jsonify({"success": False, "error": str(e)}), 500
        return jsonify(result), (200 if result.get("success") else 500)

    @app.route("/api/v1/postlist", methods=["GET"])
    def postlist():
        url = (request.args.get("url") or "").strip()
        if not url:
            return jsonify({"success": False, "error": "Section/category URL is required"}), 400

        try:
            post_lists = context.store.find_post_lists_by_section(url)
        except SyncError as e:
            return jsonify({"success": False, "error": str(e)}), 500

        data = []
        for post_list in post_lists:
            doc = post_list.to_document()
            doc["jobs"] = [_job_with_display_date(j) for j in doc.get("jobs", [])]
            data.append(doc)
        return jsonify({"success": True, "count": len(data), "data": data}), 200

    return app
