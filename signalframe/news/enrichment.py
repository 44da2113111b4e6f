"""
Enrichment finalizer: one bounded content window per item.

Iterates the capped item list (never the crawl map), so output order is the
dedup/cap order regardless of which pages finished crawling first.
"""

import html
import logging
import re
from typing import Dict, List

from signalframe.schemas import EnrichedSignal, RawItem

logger = logging.getLogger(__name__)

SNIPPET_MAX_CHARS = 800
CONTENT_MAX_CHARS = 5000


def strip_tags(html_content: str) -> str:
    """Tag-free, entity-decoded, whitespace-collapsed text."""
    if not html_content:
        return ""
    text = re.sub(r"<[^>]*>", " ", html_content)
    text = html.unescape(text)
    return re.sub(r"\s+", " ", text).strip()


def make_snippet(description: str, max_chars: int = SNIPPET_MAX_CHARS) -> str:
    return strip_tags(description)[:max_chars].strip()


def build_content(title: str, body: str, max_chars: int = CONTENT_MAX_CHARS) -> str:
    """'{title}. {body}' cut to max_chars. Never empty."""
    title = title.strip()
    body = body.strip()
    if title and body:
        content = f"{title}. {body}"
    else:
        content = title or body
    content = content[:max_chars]
    # Items with neither title nor snippet still need a non-empty window
    return content or "(untitled)"


def finalize(
    items: List[RawItem],
    crawl_results: Dict[str, str],
    snippet_max_chars: int = SNIPPET_MAX_CHARS,
    content_max_chars: int = CONTENT_MAX_CHARS,
) -> List[EnrichedSignal]:
    signals = []
    enriched = 0
    for item in items:
        title = strip_tags(item.title)
        snippet = make_snippet(item.description, snippet_max_chars)
        full_text = crawl_results.get(item.link)
        if full_text:
            enriched += 1
            content = build_content(title, full_text, content_max_chars)
        else:
            content = build_content(title, snippet, content_max_chars)

        signals.append(EnrichedSignal(
            id=item.guid or item.link,
            source=item.source,
            category=item.category,
            timestamp=item.published_at,
            title=title,
            link=item.link,
            snippet=snippet,
            picture=item.lead_image_url,
            content=content,
        ))

    logger.info(f"Finalized {len(signals)} signals, {enriched} enriched with full crawls")
    return signals
