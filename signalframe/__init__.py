"""
SignalFrame Ingestion.

Pulls a catalog of RSS/Atom feeds, filters and deduplicates the entries,
deep-crawls each article with a headless browser and returns bounded
"signals" for the downstream summarizer.
"""

__version__ = "1.0.0"
