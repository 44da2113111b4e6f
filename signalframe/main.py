"""
SignalFrame Ingestion - Main Entry Point.
FastAPI server and CLI interface.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from signalframe import __version__
from signalframe.api import feeds, health, ingest
from signalframe.api.run_manager import RunManager
from signalframe.config import Settings, get_settings
from signalframe.errors import InvalidRequestError
from signalframe.news.catalog import FeedCatalog
from signalframe.news.progress import ProgressChannel
from signalframe.pipeline import IngestionPipeline
from signalframe.schemas import ProgressStage, TERMINAL_STAGES

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Suppress noisy loggers
    for name in ("httpx", "httpcore", "asyncio"):
        logging.getLogger(name).setLevel(logging.WARNING)


def create_app(
    settings: Optional[Settings] = None,
    pipeline_factory: Optional[Callable[[], IngestionPipeline]] = None,
) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.service_name,
        description="RSS ingestion and full-text enrichment for the SignalFrame dashboard",
        version=__version__,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.catalog = FeedCatalog()
    app.state.run_manager = RunManager()
    app.state.pipeline_factory = pipeline_factory or (lambda: IngestionPipeline(settings))

    @app.exception_handler(InvalidRequestError)
    async def invalid_request_handler(request: Request, exc: InvalidRequestError):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(ingest.router, prefix="/api", tags=["ingest"])
    app.include_router(feeds.router, prefix="/api", tags=["feeds"])
    return app


app = create_app()


# CLI Runner
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="SignalFrame RSS ingestion and enrichment")
    parser.add_argument("--server", action="store_true", help="Start the FastAPI server")
    parser.add_argument("--port", type=int, default=None, help="Server port (default: PORT or 3001)")
    parser.add_argument("--date", default=None, help="Only keep items published on YYYY-MM-DD (local time)")
    parser.add_argument("--no-crawl", action="store_true", help="Skip the deep crawl, use feed snippets only")
    parser.add_argument("--max-items", type=int, default=None, help="Dedup cap (default: MAX_ITEMS or 100)")
    parser.add_argument("--timeout", type=float, default=None, help="Abort the whole run after N seconds")
    parser.add_argument("--output", default=None, help="Write signals to this JSON file")
    return parser


async def _print_progress(queue: asyncio.Queue):
    while True:
        event = await queue.get()
        marker = "!" if event.level in ("warning", "error") else "-"
        print(f"  {marker} [{event.stage}] {event.message}")
        if event.stage in TERMINAL_STAGES:
            return


async def run_once(args, settings: Optional[Settings] = None) -> int:
    """One ingestion over the built-in catalog. Returns a process exit code."""
    settings = settings or get_settings()
    if args.max_items is not None:
        settings = settings.model_copy(update={"max_items": args.max_items})

    pipeline = IngestionPipeline(settings)
    catalog = FeedCatalog()
    progress = ProgressChannel()
    printer = asyncio.create_task(_print_progress(progress.subscribe()))

    print("\n" + "=" * 60)
    print(f"SIGNALFRAME INGESTION ({args.date or 'all dates'})")
    print("=" * 60 + "\n")

    try:
        signals = await asyncio.wait_for(
            pipeline.run_for_catalog(
                catalog,
                target_date=args.date,
                progress=progress,
                crawl=False if args.no_crawl else None,
            ),
            timeout=args.timeout,
        )
    except asyncio.TimeoutError:
        progress.emit(ProgressStage.ERROR, f"Timed out after {args.timeout:.0f}s", level="error")
        await printer
        return 1
    except Exception:
        printer.cancel()
        raise

    progress.emit(ProgressStage.COMPLETE, f"{len(signals)} signals", signals=len(signals))
    await printer

    stats = pipeline.stats
    print("\n" + "=" * 60)
    print(f"Sources: {stats.sources_ok}/{stats.sources_total} ok")
    print(f"Fetched: {stats.items_fetched}  noise: {stats.items_noise}  off-date: {stats.items_off_date}")
    print(f"Unique: {stats.items_unique}  processed: {stats.items_capped}")
    print(f"Enriched: {stats.items_enriched}/{stats.signals}")
    print(f"Runtime: {stats.elapsed_seconds:.2f}s")
    if stats.failed_sources:
        print(f"\nFailed sources: {len(stats.failed_sources)}")
        for label, reason in list(stats.failed_sources.items())[:5]:
            print(f"   - {label}: {reason}")
    print("=" * 60 + "\n")

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump([s.model_dump() for s in signals], f, indent=2, ensure_ascii=False)
        print(f"Output file: {args.output}")
    return 0


def main(argv=None):
    """Entry point for CLI."""
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level)

    if args.server:
        import uvicorn
        port = args.port or settings.port
        logger.info(f"Starting server on {settings.host}:{port}...")
        uvicorn.run(create_app(settings), host=settings.host, port=port)
        return 0
    return asyncio.run(run_once(args, settings))


if __name__ == "__main__":
    sys.exit(main())
