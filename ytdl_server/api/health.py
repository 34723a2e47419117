from datetime import datetime, timezone
from fastapi import APIRouter, Depends

from ytdl_server.api.deps import get_settings
from ytdl_server.config.settings import Settings
from ytdl_server.models.response import ConfigResponse, HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Lightweight health check"""
    return HealthResponse(
        status="ok",
        message="Server is running",
        timestamp=datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    )


@router.get("/config", response_model=ConfigResponse)
async def get_config(settings: Settings = Depends(get_settings)):
    """Echo the active configuration"""
    return ConfigResponse(config=settings.public_view())
