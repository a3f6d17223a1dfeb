from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from app.core.config import Settings, get_settings
from app.schemas.common import Envelope

router = APIRouter()


@router.get("/health", response_model=Envelope[dict[str, str]])
async def health(settings: Settings = Depends(get_settings)) -> Envelope[dict[str, str]]:
    return Envelope(
        data={
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": settings.environment,
        },
        message="Server is running",
    )
