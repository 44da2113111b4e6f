"""Feed catalog router -- list, add, remove and toggle feed sources."""

from fastapi import APIRouter, HTTPException
from pydantic import AliasChoices, BaseModel, Field

from signalframe.api.dependencies import Catalog

router = APIRouter()


class FeedCreate(BaseModel):
    url: str
    source_label: str = Field(
        default="",
        validation_alias=AliasChoices("source_label", "sourceLabel", "source"),
    )
    category: str = "Custom"


class FeedToggle(BaseModel):
    url: str
    enabled: bool


def _catalog_response(catalog) -> dict:
    return {
        name: [f.model_dump(by_alias=True) for f in feeds]
        for name, feeds in catalog.snapshot().items()
    }


@router.get("/feeds")
async def list_feeds(catalog: Catalog):
    return _catalog_response(catalog)


@router.post("/feeds", status_code=201)
async def add_feed(body: FeedCreate, catalog: Catalog):
    try:
        feed = catalog.add_user_feed(body.url, body.source_label, body.category)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return feed.model_dump(by_alias=True)


@router.delete("/feeds")
async def remove_feed(url: str, catalog: Catalog):
    if not catalog.remove_user_feed(url):
        raise HTTPException(404, "User feed not found")
    return _catalog_response(catalog)


@router.post("/feeds/toggle")
async def toggle_feed(body: FeedToggle, catalog: Catalog):
    if not catalog.set_enabled(body.url, body.enabled):
        raise HTTPException(404, "Built-in feed not found")
    return _catalog_response(catalog)
