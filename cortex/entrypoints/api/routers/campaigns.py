# cortex/entrypoints/api/routers/campaigns.py
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_session
from ....config import settings
from ....services import campaigns as svc

router = APIRouter(prefix="/api", tags=["campaigns"])


@router.get("/campaigns")
async def campaigns_overview(
    days: int = Query(settings.DEFAULT_WINDOW_DAYS, ge=0, le=settings.MAX_WINDOW_DAYS),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    return {
        "campaigns": await svc.campaign_performance(session, days),
        "platforms": await svc.platform_comparison(session, days),
        "spendTrend": await svc.spend_over_time(session, days),
        "stats": await svc.campaign_stats(session, days),
    }


@router.get("/campaigns/{campaign_id}/trend")
async def campaign_trend(
    campaign_id: int,
    days: int = Query(settings.DEFAULT_WINDOW_DAYS, ge=0, le=settings.MAX_WINDOW_DAYS),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    return {"campaignId": campaign_id, "trend": await svc.campaign_trend(session, campaign_id, days)}
