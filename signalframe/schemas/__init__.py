"""
Schemas package - data models for SignalFrame Ingestion.

  - news.py: FeedSource, RawItem, EnrichedSignal
  - pipeline.py: ingest requests, progress events, run stats
"""

from signalframe.schemas.news import FeedSource, RawItem, EnrichedSignal
from signalframe.schemas.pipeline import (
    ProgressStage, ProgressEvent, TERMINAL_STAGES, IngestStats,
    IngestRequest, IngestRunRequest, IngestRunResponse, IngestRunStatus,
)

__all__ = [
    "FeedSource",
    "RawItem",
    "EnrichedSignal",
    "ProgressStage",
    "ProgressEvent",
    "TERMINAL_STAGES",
    "IngestStats",
    "IngestRequest",
    "IngestRunRequest",
    "IngestRunResponse",
    "IngestRunStatus",
]
