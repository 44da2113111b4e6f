"""
Noise filter: drops off-topic items before they cost a crawl.

Denylist is deliberately coarse. The downstream summarizer looks for hard news
signals, so sports, celebrity, awards shows, lifestyle and lottery content
never makes it out of ingestion. A single pattern hit on either the title or
the description excludes the item.

Date filter: when a target calendar date is given, an item survives only if
its publish timestamp falls on that date in the configured local zone.
Unparseable or missing dates are excluded.
"""

import logging
import re
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

from dateutil.parser import parse as parse_date

logger = logging.getLogger(__name__)

NOISE_PATTERNS = [
    # Sports leagues / events
    re.compile(r"NFL|NBA|MLB|NHL|FIFA|UEFA|vs\.|FA Cup|Super Bowl|World Cup", re.I),
    re.compile(r"\bFootball\b|\bBasketball\b|\bBaseball\b|\bSoccer\b|\bTennis\b", re.I),
    # Celebrity / entertainment gossip
    re.compile(r"Kardashian|Taylor Swift|Beyonce|Hollywood|Celebrity|Gossip|Red Carpet", re.I),
    # Awards shows, reviews, episode chatter
    re.compile(r"Grammy|Oscar|Emmy|TV Review|Film Review|Season \d+|Spoiler", re.I),
    # Lifestyle / travel / fashion
    re.compile(r"Vacation|Resort|\bHotel\b|\bCruise\b|Fashion|Style|Beauty|Makeup", re.I),
    # Lottery / astrology
    re.compile(r"Lottery|Powerball|Mega Millions|Horoscope|Astrology", re.I),
]

# Abbreviations dateutil cannot resolve on its own
TZINFOS = {
    "EST": timezone(timedelta(hours=-5)),
    "EDT": timezone(timedelta(hours=-4)),
    "CST": timezone(timedelta(hours=-6)),
    "CDT": timezone(timedelta(hours=-5)),
    "MST": timezone(timedelta(hours=-7)),
    "MDT": timezone(timedelta(hours=-6)),
    "PST": timezone(timedelta(hours=-8)),
    "PDT": timezone(timedelta(hours=-7)),
    "GMT": timezone.utc,
    "UTC": timezone.utc,
    "BST": timezone(timedelta(hours=1)),
}


def is_noise(text: str) -> bool:
    """True if text matches any denylist pattern."""
    if not text:
        return False
    return any(p.search(text) for p in NOISE_PATTERNS)


def is_noise_item(title: str, description: str) -> bool:
    return is_noise(title) or is_noise(description)


# Defaults that differ in every date field
_DEFAULT_A = datetime(2000, 1, 1)
_DEFAULT_B = datetime(2001, 2, 2)


def parse_published(value: str) -> Optional[datetime]:
    """Best-effort parse of a feed date string. Naive results are taken as UTC.

    Strings without a full calendar date ("October 2026", "Mar 10") give None
    rather than borrowing the missing parts from today.
    """
    if not value or not value.strip():
        return None
    try:
        dt = parse_date(value.strip(), default=_DEFAULT_A, tzinfos=TZINFOS)
        other = parse_date(value.strip(), default=_DEFAULT_B, tzinfos=TZINFOS)
    except (ValueError, OverflowError):
        return None
    # A date part taken from the default differs between the two parses
    if (dt.year, dt.month, dt.day) != (other.year, other.month, other.day):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def resolve_timezone(name: str = "") -> Optional[tzinfo]:
    """ZoneInfo for name, or None meaning the host's local zone."""
    if not name:
        return None
    return ZoneInfo(name)


def local_date(value: str, tz: Optional[tzinfo] = None) -> Optional[date]:
    """Calendar date of a feed timestamp in tz (host local zone when tz is None)."""
    dt = parse_published(value)
    if dt is None:
        return None
    return dt.astimezone(tz).date()


def matches_target_date(value: str, target_date: str, tz: Optional[tzinfo] = None) -> bool:
    """Exact calendar-date match against a YYYY-MM-DD target. Fails closed."""
    try:
        target = date.fromisoformat(target_date)
    except ValueError:
        logger.warning(f"Invalid target date {target_date!r}, excluding item")
        return False
    item_date = local_date(value, tz)
    return item_date is not None and item_date == target
