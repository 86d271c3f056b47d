"""Tracked catalog — which Envato items get scanned.

The built-in list is used unless TRACKED_ITEMS_FILE points at a JSON file
of the same shape: [{"name": ..., "url": ..., "source_id": ...}, ...].
Removing an entry stops it from being shown; its stored history is kept.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrackedItem:
    name: str
    url: str
    source_id: str


TRACKED_ITEMS: list[TrackedItem] = [
    TrackedItem(
        name="Avada | Website Builder For WordPress & WooCommerce",
        url="https://themeforest.net/item/avada-responsive-multipurpose-theme/2833226",
        source_id="2833226",
    ),
    TrackedItem(
        name="BeTheme | Responsive Multipurpose WordPress & WooCommerce Theme",
        url="https://themeforest.net/item/betheme-responsive-multipurpose-wordpress-theme/7758048",
        source_id="7758048",
    ),
    TrackedItem(
        name="The7 — Website and eCommerce Builder for WordPress",
        url="https://themeforest.net/item/the7-responsive-multipurpose-wordpress-theme/5556590",
        source_id="5556590",
    ),
]


def load_tracked_items() -> list[TrackedItem]:
    """Return the configured catalog."""
    from .config import settings

    if not settings.tracked_items_file:
        return list(TRACKED_ITEMS)

    path = Path(settings.tracked_items_file)
    raw = json.loads(path.read_text(encoding="utf-8"))
    items = [
        TrackedItem(name=e["name"], url=e["url"], source_id=str(e["source_id"]))
        for e in raw
    ]
    log.info("Loaded %d tracked items from %s", len(items), path)
    return items


def tracked_urls() -> set[str]:
    return {t.url for t in load_tracked_items()}
