"""Shared test helpers: settings without .env, feed documents, fake transports and browsers."""

from typing import Dict, Iterable, List, Optional, Union

import httpx

from signalframe.config import Settings
from signalframe.errors import CrawlNavigationError


def make_settings(**overrides) -> Settings:
    values = {"crawl_enabled": False, "local_timezone": ""}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def rss_document(items: Iterable[Dict[str, str]], title: str = "Test Feed") -> str:
    """RSS 2.0 document. Item values are inserted verbatim (escape them yourself)."""
    entries = []
    for item in items:
        fields = []
        for key, value in item.items():
            if key.startswith("<"):
                fields.append(value)  # raw element, e.g. an enclosure
            else:
                fields.append(f"<{key}>{value}</{key}>")
        entries.append("<item>" + "".join(fields) + "</item>")
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/">'
        f"<channel><title>{title}</title><link>https://example.com</link>"
        + "".join(entries)
        + "</channel></rss>"
    )


def feed_transport(routes: Dict[str, Union[str, int]]) -> httpx.MockTransport:
    """MockTransport serving url -> RSS body, or url -> HTTP status code."""

    def handler(request: httpx.Request) -> httpx.Response:
        target = routes.get(str(request.url))
        if target is None:
            return httpx.Response(404)
        if isinstance(target, int):
            return httpx.Response(target, text="error")
        return httpx.Response(200, text=target, headers={"Content-Type": "application/rss+xml"})

    return httpx.MockTransport(handler)


def article_html(paragraphs: List[str], wrapper: str = "article") -> str:
    body = "".join(f"<p>{p}</p>" for p in paragraphs)
    return (
        "<html><head><title>t</title><script>var x = 1;</script></head><body>"
        "<nav><p>Home News Sport Weather and a very long navigation paragraph text here</p></nav>"
        f"<{wrapper}>{body}</{wrapper}>"
        "<footer><p>Copyright notice that is long enough to count as a paragraph if kept</p></footer>"
        "</body></html>"
    )


LONG_PARAGRAPHS = [
    "The central bank held its benchmark rate steady on Tuesday, citing easing inflation pressure.",
    "Officials said they would keep watching labour market data before making any further moves.",
    "Analysts had broadly expected the decision, and bond yields moved only slightly after the release.",
]


class FakePageSource:
    """In-memory stand-in for the headless browser."""

    def __init__(self, pages: Dict[str, Union[str, Exception]], fail_start: bool = False):
        self.pages = pages
        self.fail_start = fail_start
        self.fetches: Dict[str, int] = {}
        self.entered = 0
        self.exited = 0

    async def __aenter__(self):
        if self.fail_start:
            raise RuntimeError("Executable doesn't exist")
        self.entered += 1
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.exited += 1

    async def fetch_html(self, url: str) -> str:
        self.fetches[url] = self.fetches.get(url, 0) + 1
        page = self.pages.get(url)
        if page is None:
            raise CrawlNavigationError(url, "net::ERR_NAME_NOT_RESOLVED")
        if isinstance(page, Exception):
            raise page
        return page


class FakeCrawler:
    """Crawler double returning canned text for selected URLs."""

    def __init__(self, texts: Optional[Dict[str, str]] = None):
        self.texts = texts or {}
        self.calls: List[List[str]] = []

    async def crawl(self, urls):
        self.calls.append(list(urls))
        return {u: self.texts[u] for u in urls if u in self.texts}
