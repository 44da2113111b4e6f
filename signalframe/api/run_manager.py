"""Ingestion run manager -- tracks background runs in memory.

Each run owns a ProgressChannel; SSE clients subscribe to it and get the
run's history replayed before live events.
Runs are identified by timestamp-based IDs (e.g., "20260226_143022_1a2b").
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from signalframe.news.progress import ProgressChannel
from signalframe.schemas import EnrichedSignal, IngestStats


@dataclass
class IngestRun:
    """State for a single background ingestion."""
    run_id: str
    status: str = "started"  # started | running | completed | failed
    target_date: Optional[str] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None
    progress: ProgressChannel = None
    stats: IngestStats = field(default_factory=IngestStats)
    signals: List[EnrichedSignal] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def __post_init__(self):
        if self.progress is None:
            self.progress = ProgressChannel(run_id=self.run_id)

    @property
    def current_stage(self) -> str:
        if not self.progress.history:
            return "started"
        return self.progress.history[-1].stage

    @property
    def finished(self) -> bool:
        return self.status in ("completed", "failed")

    @property
    def elapsed_seconds(self) -> float:
        end = self.completed_at or datetime.now(timezone.utc)
        return round((end - self.started_at).total_seconds(), 1)


class RunManager:
    """Tracks ingestion runs across API requests. One instance per app."""

    def __init__(self, max_runs: int = 50):
        self.max_runs = max_runs
        self._runs: Dict[str, IngestRun] = {}

    @staticmethod
    def new_run_id() -> str:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        return f"{stamp}_{uuid.uuid4().hex[:4]}"

    def create_run(self, run_id: Optional[str] = None, target_date: Optional[str] = None) -> IngestRun:
        run = IngestRun(run_id=run_id or self.new_run_id(), target_date=target_date)
        self._runs[run.run_id] = run
        self._evict()
        return run

    def get_run(self, run_id: str) -> Optional[IngestRun]:
        return self._runs.get(run_id)

    def list_runs(self, limit: int = 20) -> List[IngestRun]:
        runs = sorted(self._runs.values(), key=lambda r: r.started_at, reverse=True)
        return runs[:limit]

    @property
    def is_running(self) -> bool:
        return any(not r.finished for r in self._runs.values())

    def _evict(self):
        # Oldest finished runs go first; active runs are never dropped
        if len(self._runs) <= self.max_runs:
            return
        finished = sorted(
            (r for r in self._runs.values() if r.finished),
            key=lambda r: r.started_at,
        )
        for run in finished[: len(self._runs) - self.max_runs]:
            del self._runs[run.run_id]
