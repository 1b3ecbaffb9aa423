# cortex/entrypoints/api/routers/funnel.py
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_session
from ....config import settings
from ....services import funnel as svc

router = APIRouter(prefix="/api", tags=["funnel"])


@router.get("/funnel")
async def funnel_overview(
    days: int = Query(settings.DEFAULT_WINDOW_DAYS, ge=0, le=settings.MAX_WINDOW_DAYS),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    return {
        "funnel": await svc.funnel_analysis(session),
        "bySource": await svc.funnel_by_source(session),
        "trend": await svc.conversion_trend(session, days),
        "dropOff": await svc.drop_off_analysis(session),
    }
