from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.api.deps import get_trend_sources
from app.services import logger as log_service
from app.services import trend_sources
from app.services.trend_sources import TrendSourceFn

router = APIRouter(prefix="/api/trends", tags=["trends"])


@router.get("")
async def list_trends(
    businessType: str = "general",
    researchTopic: str = "",
    sources: dict[str, TrendSourceFn] = Depends(get_trend_sources),
):
    """Trending topics from every source, newest first, at most 20."""
    try:
        return await trend_sources.list_trends(businessType, researchTopic, sources=sources)
    except Exception as e:
        log_service.log_event(
            event_type="trends_error",
            message="Failed to aggregate trending topics",
            error=str(e),
        )
        return JSONResponse(
            {
                "success": False,
                "error": "Failed to fetch trending topics",
                "message": str(e) or "Unknown error",
            },
            status_code=500,
        )
