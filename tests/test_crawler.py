import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from conftest import LONG_PARAGRAPHS, FakePageSource, article_html, make_settings
from signalframe.errors import CrawlNavigationError, CrawlTimeoutError
from signalframe.news.crawler import DeepCrawler, PlaywrightPageSource

GOOD = "https://news.example/good"
THIN = "https://news.example/thin"
BROKEN = "https://news.example/broken"
SLOW = "https://news.example/slow"


def _crawler(pages, **overrides):
    settings = make_settings(crawl_min_concurrency=2, crawl_max_concurrency=4, **overrides)
    return DeepCrawler(settings, page_source=pages)


class TestDeepCrawler:
    def test_enriches_pages_with_enough_text(self):
        pages = FakePageSource({
            GOOD: article_html(LONG_PARAGRAPHS),
            THIN: article_html(LONG_PARAGRAPHS[:1]),
        })
        results = asyncio.run(_crawler(pages).crawl([GOOD, THIN, BROKEN]))
        assert list(results) == [GOOD]
        assert results[GOOD].startswith("The central bank held")
        assert pages.entered == pages.exited == 1

    def test_thin_page_is_not_retried(self):
        pages = FakePageSource({THIN: article_html(LONG_PARAGRAPHS[:1])})
        crawler = _crawler(pages)
        asyncio.run(crawler.crawl([THIN]))
        assert pages.fetches[THIN] == 1

    def test_failed_navigation_retried_once(self):
        pages = FakePageSource({})
        crawler = _crawler(pages)
        assert asyncio.run(crawler.crawl([BROKEN])) == {}
        assert pages.fetches[BROKEN] == 2

    def test_timeout_error_retried_once(self):
        pages = FakePageSource({SLOW: CrawlTimeoutError(SLOW, "Timeout 20000ms exceeded")})
        crawler = _crawler(pages)
        assert asyncio.run(crawler.crawl([SLOW])) == {}
        assert pages.fetches[SLOW] == 2
        assert SLOW in crawler.last_pool.failures

    def test_duplicate_and_empty_urls(self):
        pages = FakePageSource({GOOD: article_html(LONG_PARAGRAPHS)})
        results = asyncio.run(_crawler(pages).crawl([GOOD, "", GOOD]))
        assert list(results) == [GOOD]
        assert pages.fetches[GOOD] == 1

    def test_no_urls_skips_browser(self):
        pages = FakePageSource({})
        assert asyncio.run(_crawler(pages).crawl([])) == {}
        assert pages.entered == 0

    def test_browser_unavailable_resolves_empty(self):
        pages = FakePageSource({GOOD: article_html(LONG_PARAGRAPHS)}, fail_start=True)
        assert asyncio.run(_crawler(pages).crawl([GOOD])) == {}

    def test_concurrency_bound_respected(self):
        urls = [f"https://news.example/{i}" for i in range(30)]
        pages = FakePageSource({u: article_html(LONG_PARAGRAPHS) for u in urls})
        crawler = _crawler(pages)
        results = asyncio.run(crawler.crawl(urls))
        assert len(results) == 30
        assert crawler.last_pool.peak_in_flight <= 4


def _fake_browser(goto=None, html="<html><body>ok</body></html>"):
    """Browser mock whose contexts hand out pages; every created mock is recorded."""
    browser = MagicMock()
    browser.close = AsyncMock()
    browser.contexts = []
    browser.pages = []

    def _new_page():
        page = MagicMock()
        page.goto = AsyncMock(side_effect=goto)
        page.content = AsyncMock(return_value=html)
        page.close = AsyncMock()
        browser.pages.append(page)
        return page

    def _new_context(**kwargs):
        context = MagicMock()
        context.new_page = AsyncMock(side_effect=_new_page)
        context.close = AsyncMock()
        browser.contexts.append(context)
        return context

    browser.new_context = AsyncMock(side_effect=_new_context)
    return browser


def _fake_async_playwright(browser=None, launch_error=None):
    driver = MagicMock()
    driver.stop = AsyncMock()
    if launch_error is not None:
        driver.chromium.launch = AsyncMock(side_effect=launch_error)
    else:
        driver.chromium.launch = AsyncMock(return_value=browser)
    manager = MagicMock()
    manager.start = AsyncMock(return_value=driver)
    return MagicMock(return_value=manager), driver


class TestPlaywrightPageSource:
    def test_launch_uses_container_args(self):
        settings = make_settings()
        factory, driver = _fake_async_playwright(browser=_fake_browser())

        async def _run():
            with patch("playwright.async_api.async_playwright", factory):
                async with PlaywrightPageSource(settings):
                    pass

        asyncio.run(_run())
        driver.chromium.launch.assert_awaited_once_with(headless=True, args=settings.browser_args)
        assert "--no-sandbox" in settings.browser_args
        driver.stop.assert_awaited_once()

    def test_failed_launch_stops_driver(self):
        factory, driver = _fake_async_playwright(launch_error=PlaywrightError("Executable doesn't exist"))
        source = PlaywrightPageSource(make_settings())

        async def _run():
            with patch("playwright.async_api.async_playwright", factory):
                async with source:
                    pass

        with pytest.raises(PlaywrightError):
            asyncio.run(_run())
        driver.stop.assert_awaited_once()
        assert source._playwright is None
        assert source._browser is None

    def test_failed_launch_resolves_empty_crawl(self):
        settings = make_settings()
        factory, driver = _fake_async_playwright(launch_error=PlaywrightError("Executable doesn't exist"))
        crawler = DeepCrawler(settings, page_source=PlaywrightPageSource(settings))

        async def _run():
            with patch("playwright.async_api.async_playwright", factory):
                return await crawler.crawl([GOOD])

        assert asyncio.run(_run()) == {}
        driver.stop.assert_awaited_once()

    def test_fetch_html_navigates_and_returns_content(self):
        settings = make_settings()
        source = PlaywrightPageSource(settings)
        source._browser = browser = _fake_browser(html="<html>story</html>")

        assert asyncio.run(source.fetch_html(GOOD)) == "<html>story</html>"
        page = browser.pages[0]
        page.goto.assert_awaited_once_with(
            GOOD, wait_until="domcontentloaded", timeout=settings.crawl_page_timeout * 1000
        )
        page.close.assert_awaited_once()
        browser.new_context.assert_awaited_once_with(
            user_agent=settings.feed_user_agent, java_script_enabled=True
        )

    def test_contexts_are_reused(self):
        source = PlaywrightPageSource(make_settings())
        source._browser = browser = _fake_browser()

        async def _run():
            await source.fetch_html(GOOD)
            await source.fetch_html(THIN)

        asyncio.run(_run())
        assert browser.new_context.await_count == 1
        assert len(browser.pages) == 2

    def test_close_releases_every_context(self):
        async def _slow_goto(url, **kwargs):
            await asyncio.sleep(0.01)

        source = PlaywrightPageSource(make_settings())
        source._browser = browser = _fake_browser(goto=_slow_goto)

        async def _run():
            await asyncio.gather(source.fetch_html(GOOD), source.fetch_html(THIN))
            await source.close()

        asyncio.run(_run())
        assert len(browser.contexts) == 2
        for context in browser.contexts:
            context.close.assert_awaited_once()
        browser.close.assert_awaited_once()
        assert source._browser is None

    def test_timeout_maps_to_crawl_timeout(self):
        source = PlaywrightPageSource(make_settings())
        source._browser = browser = _fake_browser(
            goto=PlaywrightTimeoutError("Timeout 20000ms exceeded.\nCall log:")
        )

        with pytest.raises(CrawlTimeoutError) as exc:
            asyncio.run(source.fetch_html(SLOW))
        assert exc.value.url == SLOW
        assert exc.value.reason == "Timeout 20000ms exceeded."
        browser.pages[0].close.assert_awaited_once()
        assert source._idle_contexts == browser.contexts

    def test_navigation_error_maps_to_crawl_navigation(self):
        source = PlaywrightPageSource(make_settings())
        source._browser = browser = _fake_browser(goto=PlaywrightError("net::ERR_NAME_NOT_RESOLVED"))

        with pytest.raises(CrawlNavigationError) as exc:
            asyncio.run(source.fetch_html(BROKEN))
        assert exc.value.reason == "net::ERR_NAME_NOT_RESOLVED"
        browser.pages[0].close.assert_awaited_once()
        assert source._idle_contexts == browser.contexts
