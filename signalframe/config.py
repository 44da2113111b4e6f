"""
Configuration management for SignalFrame Ingestion.
Settings come from environment variables (or a local .env file).
"""

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Service
    service_name: str = Field(default="SignalFrame Ingestion", alias="SERVICE_NAME")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3001, alias="PORT")
    cors_origins: str = Field(
        default="http://localhost:5173,http://127.0.0.1:5173",
        alias="CORS_ORIGINS",
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # ── Feed fetching ──
    # Per-source budget. A slow feed is skipped, it never holds up the others.
    feed_fetch_timeout: float = Field(default=10.0, alias="FEED_FETCH_TIMEOUT")
    feed_user_agent: str = Field(
        default="Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
                "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
        alias="FEED_USER_AGENT",
    )

    # ── Dedup / cap ──
    # Hard ceiling on items that reach the crawler (not a ranking)
    max_items: int = Field(default=100, alias="MAX_ITEMS")

    # ── Output windows ──
    snippet_max_chars: int = Field(default=800, alias="SNIPPET_MAX_CHARS")
    content_max_chars: int = Field(default=5000, alias="CONTENT_MAX_CHARS")

    # ── Deep crawl (headless Chromium via Playwright) ──
    crawl_enabled: bool = Field(default=True, alias="CRAWL_ENABLED")
    crawl_min_concurrency: int = Field(default=5, alias="CRAWL_MIN_CONCURRENCY")
    crawl_max_concurrency: int = Field(default=15, alias="CRAWL_MAX_CONCURRENCY")
    crawl_page_timeout: float = Field(default=20.0, alias="CRAWL_PAGE_TIMEOUT")
    crawl_max_retries: int = Field(default=1, alias="CRAWL_MAX_RETRIES")
    crawl_headless: bool = Field(default=True, alias="CRAWL_HEADLESS")
    # Required for containerized Chromium (no user namespaces, tiny /dev/shm)
    crawl_browser_args: str = Field(
        default="--no-sandbox,--disable-setuid-sandbox,--disable-dev-shm-usage",
        alias="CRAWL_BROWSER_ARGS",
    )

    # ── Content quality gate ──
    # Paragraphs at or under min_paragraph_chars are captions, bylines, etc.
    min_paragraph_chars: int = Field(default=60, alias="MIN_PARAGRAPH_CHARS")
    max_paragraphs: int = Field(default=25, alias="MAX_PARAGRAPHS")
    min_content_chars: int = Field(default=200, alias="MIN_CONTENT_CHARS")

    # ── Date filter ──
    # IANA zone name used to turn publish timestamps into calendar dates.
    # Empty = the host's local zone.
    local_timezone: str = Field(default="", alias="LOCAL_TIMEZONE")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        populate_by_name = True

    @property
    def cors_origin_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def browser_args(self) -> List[str]:
        return [a.strip() for a in self.crawl_browser_args.split(",") if a.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Built-in feed catalog. User feeds are layered on top by FeedCatalog.
KNOWN_RSS_FEEDS = [
    # World / Geopolitical
    {
        "url": "https://feeds.bbci.co.uk/news/world/rss.xml",
        "category": "World",
        "source": "BBC World",
        "enabled": True,
    },
    {
        "url": "https://www.theguardian.com/world/rss",
        "category": "World",
        "source": "The Guardian",
        "enabled": True,
    },
    {
        "url": "https://www.aljazeera.com/xml/rss/all.xml",
        "category": "World",
        "source": "Al Jazeera",
        "enabled": True,
    },
    {
        "url": "https://rss.nytimes.com/services/xml/rss/nyt/World.xml",
        "category": "World",
        "source": "NY Times World",
        "enabled": True,
    },
    # Business / Financial
    {
        "url": "https://feeds.content.dowjones.io/public/rss/mw_topstories",
        "category": "Business",
        "source": "MarketWatch",
        "enabled": True,
    },
    # Technology
    {
        "url": "https://techcrunch.com/feed/",
        "category": "Technology",
        "source": "TechCrunch",
        "enabled": True,
    },
    {
        "url": "https://www.theverge.com/rss/index.xml",
        "category": "Technology",
        "source": "The Verge",
        "enabled": True,
    },
    {
        "url": "https://arstechnica.com/feed/",
        "category": "Technology",
        "source": "Ars Technica",
        "enabled": True,
    },
    # Science
    {
        "url": "https://rss.nytimes.com/services/xml/rss/nyt/Science.xml",
        "category": "Science",
        "source": "NY Times Science",
        "enabled": True,
    },
    {
        "url": "http://feeds.bbci.co.uk/news/science_and_environment/rss.xml",
        "category": "Science",
        "source": "BBC Science",
        "enabled": True,
    },
    # Health
    {
        "url": "http://feeds.bbci.co.uk/news/health/rss.xml",
        "category": "Health",
        "source": "BBC Health",
        "enabled": True,
    },
    {
        "url": "https://rss.nytimes.com/services/xml/rss/nyt/Health.xml",
        "category": "Health",
        "source": "NY Times Health",
        "enabled": True,
    },
]
