"""
Deep crawler: full article text for each surviving feed item.

RENDERING:
  Feed descriptions are one or two sentences and many publishers render the
  article body client-side. Each page is loaded in Chromium and the DOM is
  read right after DOMContentLoaded (ads, trackers and images are not awaited).

APPROACH:
  - One Chromium instance per crawl batch, launched with sandbox-disabled
    flags so it runs inside containers
  - Browser contexts are pooled and reused; acquire/release is serialized
  - WorkerPool drives the URLs: 5 → 15 concurrent pages, 20s per attempt,
    one retry, then the URL is dropped from enrichment
  - Extraction (signalframe.news.extract) runs on the DOM snapshot

The crawl is best-effort. It always resolves, even if no page could be
enriched; callers fall back to the feed snippet for missing URLs.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Sequence

from signalframe.config import Settings, get_settings
from signalframe.errors import (
    CrawlNavigationError,
    CrawlTimeoutError,
    InsufficientContentError,
)
from signalframe.news.extract import extract_article_text
from signalframe.tools.worker_pool import WorkerPool

logger = logging.getLogger(__name__)


class PlaywrightPageSource:
    """
    Renders pages in headless Chromium and returns their DOM as HTML.

    Usage:
        async with PlaywrightPageSource(settings) as pages:
            html = await pages.fetch_html(url)
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._playwright = None
        self._browser = None
        self._idle_contexts: List = []
        self._all_contexts: List = []
        self._lock = asyncio.Lock()

    async def start(self):
        from playwright.async_api import async_playwright

        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=self.settings.crawl_headless,
                args=self.settings.browser_args,
            )
        except BaseException:
            # __aexit__ does not run when __aenter__ raises; stop the driver here
            await self.close()
            raise
        logger.debug(f"[Crawler] Chromium launched with {self.settings.browser_args}")

    async def close(self):
        try:
            for context in self._all_contexts:
                try:
                    await context.close()
                except Exception:
                    logger.debug("Failed to close browser context", exc_info=True)
            if self._browser:
                await self._browser.close()
            if self._playwright:
                await self._playwright.stop()
        except Exception:
            logger.debug("Failed to close Playwright browser cleanly", exc_info=True)
        finally:
            self._idle_contexts = []
            self._all_contexts = []
            self._browser = None
            self._playwright = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def _acquire_context(self):
        async with self._lock:
            if self._idle_contexts:
                return self._idle_contexts.pop()
            context = await self._browser.new_context(
                user_agent=self.settings.feed_user_agent,
                java_script_enabled=True,
            )
            self._all_contexts.append(context)
            return context

    async def _release_context(self, context):
        async with self._lock:
            self._idle_contexts.append(context)

    @asynccontextmanager
    async def page(self):
        context = await self._acquire_context()
        page = None
        try:
            page = await context.new_page()
            yield page
        finally:
            if page is not None:
                try:
                    await page.close()
                except Exception:
                    logger.debug("Failed to close page", exc_info=True)
            await self._release_context(context)

    async def fetch_html(self, url: str) -> str:
        from playwright.async_api import Error as PlaywrightError
        from playwright.async_api import TimeoutError as PlaywrightTimeoutError

        timeout_ms = self.settings.crawl_page_timeout * 1000
        async with self.page() as page:
            try:
                await page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
                return await page.content()
            except PlaywrightTimeoutError as e:
                raise CrawlTimeoutError(url, str(e).splitlines()[0] if str(e) else "timeout")
            except PlaywrightError as e:
                raise CrawlNavigationError(url, str(e).splitlines()[0] if str(e) else "navigation failed")


class DeepCrawler:
    """
    Crawl article URLs concurrently and map each to its extracted text.

    page_source: anything with `async fetch_html(url) -> str` that is also an
    async context manager. Defaults to a fresh PlaywrightPageSource per batch.
    """

    def __init__(self, settings: Optional[Settings] = None, page_source=None):
        self.settings = settings or get_settings()
        self._page_source = page_source
        self.last_pool: Optional[WorkerPool] = None

    def _new_page_source(self):
        if self._page_source is not None:
            return self._page_source
        return PlaywrightPageSource(self.settings)

    async def crawl(self, urls: Sequence[str]) -> Dict[str, str]:
        """Returns {url: text} for the URLs that yielded enough article text."""
        todo = list(dict.fromkeys(u for u in urls if u))
        if not todo:
            return {}

        s = self.settings
        logger.info(
            f"[Crawler] Deep crawling {len(todo)} articles "
            f"(concurrency {s.crawl_min_concurrency}-{s.crawl_max_concurrency}, "
            f"{s.crawl_page_timeout:.0f}s/page, {s.crawl_max_retries} retry)"
        )

        pages = self._new_page_source()

        async def _crawl_one(url: str) -> str:
            html_content = await pages.fetch_html(url)
            return extract_article_text(
                html_content,
                url=url,
                min_paragraph_chars=s.min_paragraph_chars,
                max_paragraphs=s.max_paragraphs,
                min_content_chars=s.min_content_chars,
            )

        pool = WorkerPool(
            _crawl_one,
            min_concurrency=s.crawl_min_concurrency,
            max_concurrency=s.crawl_max_concurrency,
            timeout=s.crawl_page_timeout,
            max_retries=s.crawl_max_retries,
            no_retry=(InsufficientContentError,),
            name="Crawler",
        )
        self.last_pool = pool

        try:
            async with pages:
                results = await pool.run(todo)
        except Exception as e:
            # Browser could not start (missing binaries, no /dev/shm, ...)
            logger.error(f"[Crawler] Browser unavailable, skipping deep crawl: {e}")
            return {}

        for url, error in pool.failures.items():
            if isinstance(error, InsufficientContentError):
                logger.debug(f"[Crawler] Insufficient content for {url}")
            elif isinstance(error, asyncio.TimeoutError):
                logger.warning(f"[Crawler] Crawl timed out for {url} after {pool.attempts.get(url)} attempts")
            else:
                logger.warning(f"[Crawler] Crawl failed for {url}: {error}")

        logger.info(f"[Crawler] Enriched {len(results)}/{len(todo)} articles with full text")
        return results
