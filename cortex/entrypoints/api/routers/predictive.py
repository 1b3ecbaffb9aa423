# cortex/entrypoints/api/routers/predictive.py
from __future__ import annotations

import random
from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_session
from ....config import settings
from ....services import predictive as svc

router = APIRouter(prefix="/api", tags=["predictive"])


@router.get("/predictive")
async def predictive_overview(
    forecast_days: int = Query(7, alias="forecastDays", ge=1, le=90),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    rng = random.Random() if settings.FORECAST_JITTER else None

    return {
        "scoreDistribution": await svc.score_distribution(session),
        "conversionProbability": await svc.conversion_probability(session),
        "bestContactTimes": await svc.best_contact_times(session),
        "insights": await svc.predictive_insights(session, high_score=settings.HIGH_SCORE_THRESHOLD),
        "forecast": await svc.forecast_leads(
            session, horizon=forecast_days, history_days=settings.FORECAST_HISTORY_DAYS, rng=rng
        ),
        "anomalies": await svc.detect_anomalies(session, stale_days=settings.STALE_LEAD_DAYS),
    }
