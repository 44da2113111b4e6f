"""FastAPI dependency injection -- Depends() patterns over app.state."""

from typing import Annotated

from fastapi import Depends, Request

from signalframe.api.run_manager import RunManager
from signalframe.config import Settings
from signalframe.news.catalog import FeedCatalog
from signalframe.pipeline import IngestionPipeline


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_catalog(request: Request) -> FeedCatalog:
    return request.app.state.catalog


def get_run_manager(request: Request) -> RunManager:
    return request.app.state.run_manager


def get_pipeline(request: Request) -> IngestionPipeline:
    """A fresh pipeline per request, so concurrent runs never share stats."""
    return request.app.state.pipeline_factory()


# Type aliases for cleaner route signatures
AppSettings = Annotated[Settings, Depends(get_app_settings)]
Catalog = Annotated[FeedCatalog, Depends(get_catalog)]
Runs = Annotated[RunManager, Depends(get_run_manager)]
Pipeline = Annotated[IngestionPipeline, Depends(get_pipeline)]
