"""
Error taxonomy for the ingestion pipeline.

Only InvalidRequestError ever reaches an API caller. Everything else is raised
and absorbed inside its own layer: a failed source contributes zero items, a
failed crawl falls back to the feed snippet.
"""


class IngestError(Exception):
    """Base class for ingestion errors."""


class SourceFetchError(IngestError):
    """A feed source was unreachable, timed out, or returned a non-2xx status."""

    def __init__(self, url: str, reason: str, status_code: int = None):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"{url}: {reason}")


class FeedParseError(SourceFetchError):
    """The feed body could not be parsed into any entries."""


class CrawlError(IngestError):
    """An article page could not be enriched."""

    def __init__(self, url: str, reason: str = ""):
        self.url = url
        self.reason = reason
        super().__init__(f"{url}: {reason}" if reason else url)


class CrawlNavigationError(CrawlError):
    """Navigation failed (DNS, TLS, HTTP error page, browser crash)."""


class CrawlTimeoutError(CrawlError):
    """The page did not load and extract within its time budget."""


class InsufficientContentError(CrawlError):
    """The page loaded but its narrative text is too short to be useful."""


class InvalidRequestError(IngestError):
    """Malformed top-level ingest payload."""
