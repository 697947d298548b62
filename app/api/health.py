from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.core.config import Settings
from app.core.security import get_settings

router = APIRouter()


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str
    version: str
    timestamp: datetime


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(settings: Settings = Depends(get_settings)):
    """Simple health check endpoint."""
    return HealthResponse(service=settings.APP_NAME, version=settings.APP_VERSION, timestamp=datetime.utcnow())
