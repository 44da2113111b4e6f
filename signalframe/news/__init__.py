"""
News ingestion and enrichment.

Modules:
- catalog: feed sources (built-in + user)
- noise: off-topic denylist and target-date filter
- dedup: URL dedup (last seen wins) + processing cap
- extract: boilerplate stripping and paragraph extraction
- crawler: headless-browser deep crawl (Playwright)
- enrichment: final content windows
- progress: structured progress events
"""

from signalframe.news.catalog import FeedCatalog
from signalframe.news.noise import is_noise, is_noise_item, matches_target_date
from signalframe.news.dedup import dedupe_and_cap
from signalframe.news.extract import extract_article_text
from signalframe.news.crawler import DeepCrawler, PlaywrightPageSource
from signalframe.news.enrichment import finalize
from signalframe.news.progress import ProgressChannel
