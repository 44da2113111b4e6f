"""
Feed and article data models.

Hierarchy: FeedSource → RawItem → EnrichedSignal

RawItem is what a feed fetch produces (raw, untruncated field values).
EnrichedSignal is what the pipeline returns to the downstream summarizer.
"""

from pydantic import AliasChoices, BaseModel, Field


class FeedSource(BaseModel):
    """A configured RSS/Atom endpoint. Read-only during a run."""
    url: str
    category: str = ""
    # The dashboard sends "source"; "sourceLabel" is accepted too
    source_label: str = Field(
        default="",
        validation_alias=AliasChoices("source_label", "sourceLabel", "source"),
        serialization_alias="sourceLabel",
    )
    enabled: bool = True

    class Config:
        frozen = True
        populate_by_name = True


class RawItem(BaseModel):
    """One syndication entry parsed from a feed response."""
    title: str = ""
    link: str = ""
    description: str = ""        # HTML-bearing snippet
    published_at: str = ""       # raw date string, parsed lazily
    guid: str = ""
    lead_image_url: str = ""

    # Attribution carried over from the FeedSource that produced the item
    source: str = ""
    category: str = ""


class EnrichedSignal(BaseModel):
    """
    Pipeline output unit.

    Exactly one EnrichedSignal exists per unique link in a run's output.
    snippet is tag-free and at most 800 chars; content is at most 5000 chars and
    never empty (full crawl text when available, otherwise title + snippet).
    """
    id: str
    source: str = ""
    category: str = ""
    timestamp: str = ""
    title: str = ""
    link: str = ""
    snippet: str = ""
    picture: str = ""
    content: str

    class Config:
        frozen = True
