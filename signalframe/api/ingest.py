"""Ingest API router -- synchronous ingest, background runs, SSE progress.

POST /ingest is the dashboard's "refresh" call: it blocks until the run is done
and returns the signal list. POST /ingest/runs starts the same pipeline in the
background; progress is streamed from the run's ProgressChannel.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, List, Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from signalframe.api.dependencies import Catalog, Pipeline, Runs
from signalframe.api.run_manager import IngestRun
from signalframe.errors import InvalidRequestError
from signalframe.pipeline import IngestionPipeline
from signalframe.schemas import (
    FeedSource,
    IngestRequest,
    IngestRunRequest,
    IngestRunResponse,
    IngestRunStatus,
    ProgressStage,
    TERMINAL_STAGES,
)

logger = logging.getLogger(__name__)

router = APIRouter()

HEARTBEAT_SECONDS = 15
FEEDS_REQUIRED = "Feeds array is required"


async def _read_json(request: Request) -> Any:
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except ValueError:
        raise InvalidRequestError("Request body must be JSON")


def _validation_message(exc: ValidationError) -> str:
    first = exc.errors()[0]
    loc = ".".join(str(part) for part in first.get("loc", ()))
    msg = first.get("msg", "invalid value")
    return f"{loc}: {msg}" if loc else msg


def parse_ingest_request(body: Any) -> IngestRequest:
    """Validate a POST /ingest body. Raises InvalidRequestError on any problem."""
    if not isinstance(body, dict) or not isinstance(body.get("feeds"), list):
        raise InvalidRequestError(FEEDS_REQUIRED)
    try:
        return IngestRequest.model_validate(body)
    except ValidationError as e:
        raise InvalidRequestError(_validation_message(e))


def parse_run_request(body: Any) -> IngestRunRequest:
    if body is None:
        return IngestRunRequest()
    if not isinstance(body, dict):
        raise InvalidRequestError("Request body must be a JSON object")
    if "feeds" in body and body["feeds"] is not None and not isinstance(body["feeds"], list):
        raise InvalidRequestError(FEEDS_REQUIRED)
    try:
        return IngestRunRequest.model_validate(body)
    except ValidationError as e:
        raise InvalidRequestError(_validation_message(e))


@router.post("/ingest")
async def ingest(request: Request, pipeline: Pipeline):
    """Run one ingestion over the posted feeds and return the signals."""
    payload = parse_ingest_request(await _read_json(request))
    signals = await pipeline.run(payload.feeds, target_date=payload.target_date)
    return [s.model_dump() for s in signals]


async def execute_run(
    run: IngestRun,
    pipeline: IngestionPipeline,
    feeds: List[FeedSource],
    target_date: Optional[str] = None,
):
    """Background task: run the pipeline and close the run's progress channel."""
    run.status = "running"
    try:
        signals = await pipeline.run(feeds, target_date=target_date, progress=run.progress)
    except asyncio.CancelledError:
        run.status = "failed"
        run.errors.append("cancelled")
        run.completed_at = datetime.now(timezone.utc)
        run.progress.emit(ProgressStage.ERROR, "Run cancelled", level="error")
        raise
    except Exception as e:
        run.status = "failed"
        run.errors.append(str(e))
        run.stats = pipeline.stats
        run.completed_at = datetime.now(timezone.utc)
        logger.error(f"[Ingest] Run {run.run_id} failed: {e}")
        run.progress.emit(ProgressStage.ERROR, str(e), level="error")
        return

    run.signals = signals
    run.stats = pipeline.stats
    run.status = "completed"
    run.completed_at = datetime.now(timezone.utc)
    logger.info(f"[Ingest] Run {run.run_id} completed: {len(signals)} signals in {run.elapsed_seconds:.0f}s")
    run.progress.emit(
        ProgressStage.COMPLETE,
        f"{len(signals)} signals",
        signals=len(signals),
        enriched=run.stats.items_enriched,
        runtime=run.elapsed_seconds,
    )


@router.post("/ingest/runs", response_model=IngestRunResponse)
async def start_run(
    request: Request,
    background_tasks: BackgroundTasks,
    pipeline: Pipeline,
    catalog: Catalog,
    runs: Runs,
):
    """Start an ingestion in the background. Returns run_id for SSE streaming."""
    payload = parse_run_request(await _read_json(request))
    feeds = payload.feeds if payload.feeds is not None else catalog.get_active_feeds()

    run = runs.create_run(target_date=payload.target_date)
    background_tasks.add_task(execute_run, run, pipeline, feeds, payload.target_date)

    return IngestRunResponse(
        run_id=run.run_id,
        status="started",
        message=f"Ingestion started. Stream progress at /api/ingest/runs/{run.run_id}/stream",
    )


@router.get("/ingest/runs")
async def list_runs(runs: Runs, limit: int = 20):
    return [_run_status(r) for r in runs.list_runs(limit=limit)]


def _get_run_or_404(runs, run_id: str) -> IngestRun:
    run = runs.get_run(run_id)
    if not run:
        raise HTTPException(404, "Run not found")
    return run


def _run_status(run: IngestRun) -> IngestRunStatus:
    return IngestRunStatus(
        run_id=run.run_id,
        status=run.status,
        current_stage=run.current_stage,
        started_at=run.started_at.isoformat(),
        elapsed_seconds=run.elapsed_seconds,
        stats=run.stats,
        errors=run.errors,
    )


@router.get("/ingest/runs/{run_id}/stream")
async def stream_progress(run_id: str, runs: Runs):
    """SSE endpoint -- ProgressEvent JSON per message, ends on complete/error.

        const es = new EventSource(`/api/ingest/runs/${runId}/stream`);
        es.onmessage = (e) => { const event = JSON.parse(e.data); ... };
    """
    run = _get_run_or_404(runs, run_id)
    queue = run.progress.subscribe(replay=True)

    async def event_generator():
        try:
            while True:
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=HEARTBEAT_SECONDS)
                except asyncio.TimeoutError:
                    # Keeps the connection alive through proxies
                    yield f"data: {json.dumps({'stage': 'heartbeat'})}\n\n"
                    continue
                yield f"data: {event.model_dump_json()}\n\n"
                if event.stage in TERMINAL_STAGES:
                    break
        finally:
            run.progress.unsubscribe(queue)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.get("/ingest/runs/{run_id}", response_model=IngestRunStatus)
async def get_run_status(run_id: str, runs: Runs):
    """Poll run status (fallback for clients that can't use SSE)."""
    return _run_status(_get_run_or_404(runs, run_id))


@router.get("/ingest/runs/{run_id}/result")
async def get_run_result(run_id: str, runs: Runs):
    run = _get_run_or_404(runs, run_id)
    if not run.finished:
        raise HTTPException(202, "Ingestion still running")
    return [s.model_dump() for s in run.signals]
