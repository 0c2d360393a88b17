"""
File Handler Tool — loads the site seed config and saves sync reports to JSON.
"""

import json
import os
from datetime import datetime

import yaml


def load_site_config(yaml_path: str) -> dict:
    """
    Load a site seed configuration from a YAML file.

    Args:
        yaml_path: Path to the sites.yaml file.

    Returns:
        Dict with keys: site_url, categories (list of {name, link}) and
        subscribers (list of {email, name}).
    """
    with open(yaml_path, "r") as f:
        data = yaml.safe_load(f) or {}

    site = data.get("site", {}) or {}

    # Validate required fields
    categories = []
    for category in site.get("categories", []) or []:
        if isinstance(category, dict) and category.get("link"):
            categories.append({
                "name": str(category.get("name") or ""),
                "link": str(category["link"]).strip(),
            })

    subscribers = []
    for subscriber in data.get("subscribers", []) or []:
        if isinstance(subscriber, str):
            subscriber = {"email": subscriber}
        if isinstance(subscriber, dict) and subscriber.get("email"):
            subscribers.append({
                "email": str(subscriber["email"]).strip(),
                "name": str(subscriber.get("name") or ""),
            })

    return {
        "site_url": str(site.get("url") or "").strip(),
        "categories": categories,
        "subscribers": subscribers,
    }


def save_to_json(data, output_dir: str, filename: str = None) -> str:
    """
    Save a sync report (or any JSON-serializable data) to a JSON file.

    Args:
        data: The data to save.
        output_dir: Directory to save the file in.
        filename: Optional filename (auto-generated with timestamp if not provided).

    Returns:
        Path to the saved file.
    """
    os.makedirs(output_dir, exist_ok=True)

    if not filename:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = f"sync_report_{timestamp}.json"

    filepath = os.path.join(output_dir, filename)

    with open(filepath, "w") as f:
        json.dump(data, f, indent=2, default=str)

    return filepath
