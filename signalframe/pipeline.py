"""
Ingestion pipeline: feeds in, enriched signals out.

    FeedCatalog / request feeds
        → RSSTool.fetch_all        (parallel, 10s per source, failures isolated)
        → noise + date filter
        → dedupe_and_cap           (last seen wins, cap 100)
        → DeepCrawler.crawl        (5-15 pages, 20s, 1 retry, best-effort)
        → finalize                 (crawl text or snippet, bounded windows)

Per-source and per-URL failures are absorbed where they happen. A run always
returns a list (possibly empty).
"""

import logging
import time
from typing import List, Optional

from signalframe.config import Settings, get_settings
from signalframe.news.catalog import FeedCatalog
from signalframe.news.crawler import DeepCrawler
from signalframe.news.dedup import dedupe_and_cap
from signalframe.news.enrichment import finalize
from signalframe.news.noise import is_noise_item, matches_target_date, resolve_timezone
from signalframe.news.progress import ProgressChannel
from signalframe.schemas import EnrichedSignal, FeedSource, IngestStats, ProgressStage, RawItem
from signalframe.tools.rss_tool import RSSTool

logger = logging.getLogger(__name__)


class IngestionPipeline:

    def __init__(
        self,
        settings: Optional[Settings] = None,
        rss_tool: Optional[RSSTool] = None,
        crawler: Optional[DeepCrawler] = None,
    ):
        self.settings = settings or get_settings()
        self.rss_tool = rss_tool or RSSTool(self.settings)
        self.crawler = crawler or DeepCrawler(self.settings)
        self.stats = IngestStats()

    def filter_items(self, items: List[RawItem], target_date: Optional[str] = None) -> List[RawItem]:
        """Drop denylisted items, and off-date items when target_date is set."""
        tz = resolve_timezone(self.settings.local_timezone) if target_date else None
        kept = []
        for item in items:
            if is_noise_item(item.title, item.description):
                self.stats.items_noise += 1
                continue
            if target_date and not matches_target_date(item.published_at, target_date, tz):
                self.stats.items_off_date += 1
                continue
            kept.append(item)
        return kept

    async def run(
        self,
        feeds: List[FeedSource],
        target_date: Optional[str] = None,
        progress: Optional[ProgressChannel] = None,
        crawl: Optional[bool] = None,
    ) -> List[EnrichedSignal]:
        progress = progress or ProgressChannel()
        crawl = self.settings.crawl_enabled if crawl is None else crawl
        self.stats = IngestStats()
        t0 = time.time()

        active = [f for f in feeds if f.enabled]
        self.stats.sources_total = len(active)
        logger.info(f"[Ingest] Comprehensive ingestion started for {target_date or 'today'} ({len(active)} feeds)")
        progress.emit(
            ProgressStage.STARTED,
            f"Ingestion started for {target_date or 'today'}",
            feeds=len(active),
            target_date=target_date,
        )

        # 1. Fetch + parse all feeds in parallel
        progress.emit(ProgressStage.FETCHING, f"Fetching {len(active)} feeds")

        def _on_source_done(source, items, error):
            label = source.source_label or source.url
            if error is None:
                progress.emit(ProgressStage.SOURCE_OK, f"{label}: {len(items)} items", source=label, items=len(items))
            else:
                progress.emit(
                    ProgressStage.SOURCE_FAILED,
                    f"{label}: failed",
                    level="warning",
                    source=label,
                    reason=getattr(error, "reason", str(error)),
                )

        raw_items, failures = await self.rss_tool.fetch_all(
            active, timeout=self.settings.feed_fetch_timeout, on_source_done=_on_source_done
        )
        self.stats.items_fetched = len(raw_items)
        self.stats.sources_failed = len(failures)
        self.stats.sources_ok = len(active) - len(failures)
        self.stats.failed_sources = dict(failures)

        # 2. Noise + date filter
        filtered = self.filter_items(raw_items, target_date)
        progress.emit(
            ProgressStage.FILTERED,
            f"{len(filtered)}/{len(raw_items)} items kept after filtering",
            kept=len(filtered),
            noise=self.stats.items_noise,
            off_date=self.stats.items_off_date,
        )

        # 3. Dedup + cap
        capped = dedupe_and_cap(filtered, self.settings.max_items)
        self.stats.items_unique = len({i.link.strip() for i in filtered if i.link.strip()})
        self.stats.items_capped = len(capped)
        logger.info(f"[Ingest] Total unique articles to process: {self.stats.items_unique}")
        progress.emit(
            ProgressStage.DEDUPLICATED,
            f"{len(capped)} unique articles to process",
            unique=self.stats.items_unique,
            capped=len(capped),
        )

        # 4. Deep crawl (best-effort)
        crawl_results = {}
        if crawl and capped:
            urls = [i.link for i in capped if i.link]
            progress.emit(ProgressStage.CRAWLING, f"Deep crawling {len(urls)} articles", urls=len(urls))
            crawl_results = await self.crawler.crawl(urls)
            self.stats.urls_crawled = len(urls)
            progress.emit(
                ProgressStage.CRAWLED,
                f"Enriched {len(crawl_results)}/{len(urls)} articles",
                enriched=len(crawl_results),
            )

        # 5. Finalize
        signals = finalize(
            capped,
            crawl_results,
            snippet_max_chars=self.settings.snippet_max_chars,
            content_max_chars=self.settings.content_max_chars,
        )
        self.stats.items_enriched = sum(1 for i in capped if i.link in crawl_results)
        self.stats.signals = len(signals)
        self.stats.elapsed_seconds = round(time.time() - t0, 2)
        progress.emit(ProgressStage.FINALIZED, f"{len(signals)} signals ready", signals=len(signals))

        logger.info(
            f"[Ingest] Ingestion complete. Enriched {self.stats.items_enriched}/{len(signals)} items "
            f"with full crawls in {self.stats.elapsed_seconds:.1f}s"
        )
        return signals

    async def run_for_catalog(
        self,
        catalog: FeedCatalog,
        target_date: Optional[str] = None,
        progress: Optional[ProgressChannel] = None,
        crawl: Optional[bool] = None,
    ) -> List[EnrichedSignal]:
        return await self.run(catalog.get_active_feeds(), target_date, progress, crawl)
