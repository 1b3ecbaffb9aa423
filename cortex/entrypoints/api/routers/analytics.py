# cortex/entrypoints/api/routers/analytics.py
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_session
from ....config import settings
from ....schemas import LeadOut
from ....services import analytics
from ....services.leads import recent_leads

router = APIRouter(prefix="/api", tags=["analytics"])


@router.get("/analytics")
async def dashboard(
    days: int = Query(settings.DEFAULT_WINDOW_DAYS, ge=0, le=settings.MAX_WINDOW_DAYS),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    # one session, reports run back to back
    kpis = await analytics.dashboard_kpis(session, days)
    daily = await analytics.daily_leads(session, days)
    sources = await analytics.source_distribution(session)
    funnel = await analytics.funnel_stages(session)
    recent = await recent_leads(session, settings.RECENT_LEADS_LIMIT)
    top = await analytics.top_campaigns(session, settings.TOP_CAMPAIGNS_LIMIT)

    return {
        "kpis": kpis,
        "dailyLeads": daily,
        "sourceDistribution": sources,
        "funnelData": funnel,
        "recentLeads": [LeadOut.from_row(r).model_dump(mode="json") for r in recent],
        "topCampaigns": top,
    }
