"""Health check router."""

from fastapi import APIRouter

from signalframe.api.dependencies import AppSettings

router = APIRouter()


@router.get("/status")
async def status(settings: AppSettings):
    return {"status": "online", "service": settings.service_name}
