"""
URL deduplication and processing cap.

Items are keyed by their trimmed link. When several sources carry the same
link, the LAST one seen wins, but it keeps the position where that link first
appeared (dict insertion order). Later sources therefore overwrite earlier
ones' metadata without reordering the batch.

The cap is a hard ceiling on crawl cost, applied after dedup in whatever order
survives. It is not a quality ranking.
"""

import logging
from typing import Dict, List

from signalframe.schemas import RawItem

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITEMS = 100


def dedupe_by_link(items: List[RawItem]) -> List[RawItem]:
    by_link: Dict[str, RawItem] = {}
    for item in items:
        key = item.link.strip()
        if key != item.link:
            item = item.model_copy(update={"link": key})
        by_link[key] = item
    return list(by_link.values())


def dedupe_and_cap(items: List[RawItem], max_count: int = DEFAULT_MAX_ITEMS) -> List[RawItem]:
    unique = dedupe_by_link(items)
    capped = unique[:max(max_count, 0)]
    logger.info(
        f"Deduplication: {len(items)} -> {len(unique)} unique"
        + (f", capped to {len(capped)}" if len(capped) < len(unique) else "")
    )
    return capped
