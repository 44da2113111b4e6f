"""
RSS Tool for fetching and parsing syndication feeds.

Every source is fetched independently and in parallel. A source that times out,
returns a non-2xx status, or serves an unparseable document is logged and
contributes zero items. It never aborts the batch.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

import feedparser
import httpx
from bs4 import BeautifulSoup

from ..config import Settings, get_settings
from ..errors import FeedParseError, SourceFetchError
from ..schemas import FeedSource, RawItem

logger = logging.getLogger(__name__)

_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".avif", ".bmp")

_ACCEPT = "application/rss+xml, application/atom+xml, application/xml;q=0.9, text/xml;q=0.9, */*;q=0.8"


def _looks_like_image(url: str, mime: str = "") -> bool:
    if mime and mime.lower().startswith("image"):
        return True
    path = url.split("?", 1)[0].split("#", 1)[0].lower()
    return path.endswith(_IMAGE_EXTENSIONS)


def extract_lead_image(entry: Dict[str, Any], description: str) -> str:
    """
    Lead image for an entry, in priority order:
      1. media:content url
      2. enclosure with an image MIME type or image file extension
      3. first <img src> inside the description HTML
    """
    for media in entry.get("media_content") or []:
        url = (media or {}).get("url", "")
        if url:
            return url

    enclosures = list(entry.get("enclosures") or [])
    enclosures += [l for l in entry.get("links") or [] if l.get("rel") == "enclosure"]
    for enc in enclosures:
        url = enc.get("href") or enc.get("url") or ""
        if url and _looks_like_image(url, enc.get("type", "")):
            return url

    if description and "<img" in description.lower():
        try:
            img = BeautifulSoup(description, "lxml").find("img", src=True)
            if img:
                return img["src"]
        except Exception as e:
            logger.debug(f"Description image lookup failed: {e}")
    return ""


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


class RSSTool:
    """
    Feed fetcher + tolerant parser.

    transport: optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(self, settings: Optional[Settings] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings or get_settings()
        self._transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": self.settings.feed_user_agent, "Accept": _ACCEPT},
            transport=self._transport,
        )

    async def fetch_feed(self, source: FeedSource, timeout: Optional[float] = None) -> List[RawItem]:
        """
        Fetch one feed and parse its items.

        Raises:
            SourceFetchError: network error, timeout, or non-2xx status
            FeedParseError: the body has no parseable entries
        """
        timeout = timeout if timeout is not None else self.settings.feed_fetch_timeout
        try:
            async with self._client(timeout) as client:
                response = await asyncio.wait_for(client.get(source.url), timeout=timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            raise SourceFetchError(source.url, f"timeout after {timeout:.0f}s")
        except httpx.HTTPError as e:
            raise SourceFetchError(source.url, f"{type(e).__name__}: {e}")

        if not response.is_success:
            raise SourceFetchError(source.url, f"HTTP {response.status_code}", response.status_code)

        return self.parse_feed(response.content, source)

    def parse_feed(self, body, source: FeedSource) -> List[RawItem]:
        """Parse a feed document. Per-field problems fall back to empty strings."""
        if isinstance(body, str):
            body = body.encode("utf-8")
        feed = feedparser.parse(body)
        if not feed.entries:
            if feed.bozo:
                raise FeedParseError(source.url, f"XML parse error: {feed.get('bozo_exception')}")
            return []
        if feed.bozo:
            logger.debug(f"[RSS] {source.source_label}: lenient parse ({feed.get('bozo_exception')})")

        items = []
        for entry in feed.entries:
            item = self._parse_entry(entry, source)
            if item is not None:
                items.append(item)
        return items

    def _parse_entry(self, entry: Dict[str, Any], source: FeedSource) -> Optional[RawItem]:
        """Parse a feed entry to a RawItem (raw, untruncated values)."""
        try:
            link = _text(entry.get("link"))
            description = entry.get("summary") or entry.get("description") or ""
            if not isinstance(description, str):
                description = ""
            return RawItem(
                title=_text(entry.get("title")),
                link=link,
                description=description,
                published_at=_text(entry.get("published")) or _text(entry.get("updated")),
                guid=_text(entry.get("id")) or link,
                lead_image_url=extract_lead_image(entry, description),
                source=source.source_label,
                category=source.category,
            )
        except Exception as e:
            logger.warning(f"Failed to parse entry: {e}")
            return None

    async def fetch_all(
        self,
        sources: List[FeedSource],
        timeout: Optional[float] = None,
        on_source_done=None,
    ) -> Tuple[List[RawItem], Dict[str, str]]:
        """
        Fetch all sources in parallel.

        Returns (items, failures) where items keep per-source document order
        (sources concatenated in completion order) and failures maps
        source label -> reason. on_source_done(source, items, error) is called
        as each source finishes.
        """
        all_items: List[RawItem] = []
        failures: Dict[str, str] = {}

        async def _fetch_one(source: FeedSource):
            try:
                items = await self.fetch_feed(source, timeout)
            except Exception as e:
                reason = e.reason if isinstance(e, SourceFetchError) else f"{type(e).__name__}: {e}"
                logger.warning(f"[RSS] Failed {source.source_label or source.url}: {reason}")
                failures[source.source_label or source.url] = reason
                if on_source_done:
                    on_source_done(source, [], e)
                return

            all_items.extend(items)
            logger.info(f"[RSS] {source.source_label}: Fetched {len(items)} articles")
            if on_source_done:
                on_source_done(source, items, None)

        await asyncio.gather(*[_fetch_one(s) for s in sources])
        logger.info(
            f"[RSS] Fetched {len(all_items)} items from {len(sources) - len(failures)}/{len(sources)} sources"
        )
        return all_items, failures
