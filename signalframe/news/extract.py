"""
Narrative text extraction from a rendered article page.

Works on the DOM snapshot the crawler takes right after DOMContentLoaded:
  1. Drop boilerplate regions (scripts, chrome, ads, share widgets, ...)
  2. Pick the main content container by priority, falling back to <body>
  3. Keep substantial <p> text only, join the first N with blank lines
  4. Quality gate: too little text means no enrichment for this page
"""

import logging
from typing import Optional

from bs4 import BeautifulSoup

from signalframe.errors import InsufficientContentError

logger = logging.getLogger(__name__)

BOILERPLATE_SELECTORS = [
    "script", "style", "nav", "footer", "header", "aside",
    ".ads", ".comments", ".sidebar", ".menu", ".social-share",
    ".related-posts", ".newsletter-signup", ".cookie-banner",
]

# First match wins, in this order
CONTENT_SELECTORS = [
    "article",
    '[itemprop="articleBody"]',
    ".article-content",
    ".post-content",
    "main",
]


def strip_boilerplate(soup: BeautifulSoup) -> None:
    for selector in BOILERPLATE_SELECTORS:
        for el in soup.select(selector):
            el.decompose()


def find_content_container(soup: BeautifulSoup):
    for selector in CONTENT_SELECTORS:
        el = soup.select_one(selector)
        if el is not None:
            return el
    return soup.body or soup


def extract_paragraphs(
    html_content: str,
    min_paragraph_chars: int = 60,
    max_paragraphs: int = 25,
) -> str:
    """Joined text of the qualifying paragraphs ("" when none qualify)."""
    soup = BeautifulSoup(html_content, "lxml")
    strip_boilerplate(soup)
    container = find_content_container(soup)

    kept = []
    for p in container.find_all("p"):
        text = p.get_text().strip()
        if len(text) > min_paragraph_chars:
            kept.append(text)
            if len(kept) >= max_paragraphs:
                break
    return "\n\n".join(kept)


def extract_article_text(
    html_content: str,
    url: str = "",
    min_paragraph_chars: int = 60,
    max_paragraphs: int = 25,
    min_content_chars: int = 200,
) -> str:
    """
    Extract the article's narrative text.

    Raises InsufficientContentError when the joined text is not longer than
    min_content_chars. That is a soft outcome, not a crawl failure.
    """
    text = extract_paragraphs(html_content, min_paragraph_chars, max_paragraphs)
    if len(text) <= min_content_chars:
        raise InsufficientContentError(url, f"only {len(text)} chars of paragraph text")
    return text
