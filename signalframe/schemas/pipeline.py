"""
Pipeline request, progress and run-summary models.
"""

import re
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from .news import FeedSource


class ProgressStage(str, Enum):
    """Stages a run reports through its ProgressChannel."""
    STARTED = "started"
    FETCHING = "fetching"
    SOURCE_OK = "source_ok"
    SOURCE_FAILED = "source_failed"
    FILTERED = "filtered"
    DEDUPLICATED = "deduplicated"
    CRAWLING = "crawling"
    CRAWLED = "crawled"
    FINALIZED = "finalized"
    COMPLETE = "complete"
    ERROR = "error"


TERMINAL_STAGES = frozenset({ProgressStage.COMPLETE.value, ProgressStage.ERROR.value})


class ProgressEvent(BaseModel):
    """One structured progress update emitted by the pipeline."""
    stage: ProgressStage
    message: str = ""
    level: str = "info"
    run_id: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    emitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        use_enum_values = True


class IngestStats(BaseModel):
    """Counters describing one ingestion run."""
    sources_total: int = 0
    sources_ok: int = 0
    sources_failed: int = 0
    failed_sources: Dict[str, str] = Field(default_factory=dict)  # label -> reason
    items_fetched: int = 0
    items_noise: int = 0
    items_off_date: int = 0
    items_unique: int = 0
    items_capped: int = 0
    urls_crawled: int = 0
    items_enriched: int = 0
    signals: int = 0
    elapsed_seconds: float = 0.0


_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _validate_target_date(v):
    if v is None or v == "":
        return None
    if not isinstance(v, str):
        raise ValueError("targetDate must be a YYYY-MM-DD string")
    try:
        if not _ISO_DATE.match(v):
            raise ValueError
        date.fromisoformat(v)
    except ValueError:
        raise ValueError(f"targetDate must be YYYY-MM-DD, got {v!r}")
    return v


class IngestRequest(BaseModel):
    """Inbound ingest payload: {feeds: [...], targetDate?: "YYYY-MM-DD"}."""
    feeds: List[FeedSource]
    target_date: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("target_date", "targetDate"),
    )

    @field_validator("target_date", mode="before")
    @classmethod
    def _check_target_date(cls, v):
        return _validate_target_date(v)


class IngestRunRequest(BaseModel):
    """Background run payload. Omitting feeds uses the server's catalog."""
    feeds: Optional[List[FeedSource]] = None
    target_date: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("target_date", "targetDate"),
    )

    @field_validator("target_date", mode="before")
    @classmethod
    def _check_target_date(cls, v):
        return _validate_target_date(v)


class IngestRunResponse(BaseModel):
    run_id: str
    status: str  # started | running | completed | failed
    message: str


class IngestRunStatus(BaseModel):
    run_id: str
    status: str
    current_stage: str
    started_at: str
    elapsed_seconds: float
    stats: IngestStats
    errors: List[str] = Field(default_factory=list)
