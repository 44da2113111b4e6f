"""
Feed catalog: built-in sources plus user-registered ones.

A FeedCatalog instance is owned by whoever runs ingestion (the API keeps one on
app.state) and passed to the pipeline explicitly. Nothing here is module-global.
"""

import logging
from typing import Dict, Iterable, List, Optional

from signalframe.config import KNOWN_RSS_FEEDS
from signalframe.schemas import FeedSource

logger = logging.getLogger(__name__)


class FeedCatalog:
    """Built-in feeds (toggleable) + user feeds (always enabled)."""

    def __init__(self, builtin: Optional[Iterable] = None):
        entries = KNOWN_RSS_FEEDS if builtin is None else builtin
        self._builtin: List[FeedSource] = [
            e if isinstance(e, FeedSource) else FeedSource.model_validate(e)
            for e in entries
        ]
        self._user: List[FeedSource] = []

    @property
    def builtin_feeds(self) -> List[FeedSource]:
        return list(self._builtin)

    @property
    def user_feeds(self) -> List[FeedSource]:
        return list(self._user)

    def get_active_feeds(self) -> List[FeedSource]:
        """Enabled built-in feeds in catalog order, then user feeds in insertion order.

        Duplicate URLs are not collapsed here; items are deduplicated by link
        later in the pipeline.
        """
        active = [f for f in self._builtin if f.enabled]
        active.extend(self._user)
        return active

    def add_user_feed(self, url: str, source_label: str, category: str = "Custom") -> FeedSource:
        url = url.strip()
        if not url:
            raise ValueError("Feed URL is required")
        if not url.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        feed = FeedSource(
            url=url,
            source_label=source_label.strip() or url,
            category=category.strip() or "Custom",
            enabled=True,
        )
        self._user.append(feed)
        logger.info(f"[Catalog] Added user feed {feed.source_label} ({url})")
        return feed

    def remove_user_feed(self, url: str) -> bool:
        """Remove every user feed with this URL. Returns True if any were removed."""
        before = len(self._user)
        self._user = [f for f in self._user if f.url != url]
        removed = before - len(self._user)
        if removed:
            logger.info(f"[Catalog] Removed user feed {url}")
        return removed > 0

    def set_enabled(self, url: str, enabled: bool) -> bool:
        """Toggle a built-in feed. Returns False if no built-in feed has this URL."""
        found = False
        for i, feed in enumerate(self._builtin):
            if feed.url == url:
                self._builtin[i] = feed.model_copy(update={"enabled": enabled})
                found = True
        if found:
            logger.info(f"[Catalog] {'Enabled' if enabled else 'Disabled'} {url}")
        return found

    def snapshot(self) -> Dict[str, List[FeedSource]]:
        return {
            "default_feeds": self.builtin_feeds,
            "user_feeds": self.user_feeds,
            "active_feeds": self.get_active_feeds(),
        }
