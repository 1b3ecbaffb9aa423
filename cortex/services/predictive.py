# cortex/services/predictive.py
from __future__ import annotations

import random
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import case, extract, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.dates import window_start
from ..domain.forecast import project_forecast
from ..domain.ratios import pct, round_half_up
from ..models import Lead, LeadStatus

# (min, max, color); inclusive on both ends
SCORE_BANDS: list[tuple[int, int, str]] = [
    (0, 20, "#ef4444"),
    (21, 40, "#f97316"),
    (41, 60, "#f59e0b"),
    (61, 80, "#22d3ee"),
    (81, 100, "#22c55e"),
]

ANOMALY_HIGH_SCORE = 80
ANOMALY_LOW_SCORE = 30


def _band(score: int) -> int | None:
    for i, (lo, hi, _) in enumerate(SCORE_BANDS):
        if lo <= score <= hi:
            return i
    return None


async def _band_counts(session: AsyncSession) -> tuple[list[int], list[int]]:
    """(total per band, converted per band) from one GROUP BY score, status."""
    rows = (
        await session.execute(select(Lead.score, Lead.status, func.count(Lead.id)).group_by(Lead.score, Lead.status))
    ).all()

    totals = [0] * len(SCORE_BANDS)
    converted = [0] * len(SCORE_BANDS)
    for score, status, n in rows:
        b = _band(int(score or 0))
        if b is None:
            continue
        totals[b] += int(n)
        if status == LeadStatus.converted:
            converted[b] += int(n)
    return totals, converted


async def score_distribution(session: AsyncSession) -> list[dict[str, Any]]:
    totals, _ = await _band_counts(session)
    n = sum(totals)
    return [
        {"range": f"{lo}-{hi}", "count": c, "percentage": pct(c, n), "color": color}
        for (lo, hi, color), c in zip(SCORE_BANDS, totals)
    ]


async def conversion_probability(session: AsyncSession) -> list[dict[str, Any]]:
    totals, converted = await _band_counts(session)
    out = []
    for (lo, hi, _), total, conv in zip(SCORE_BANDS, totals, converted):
        probability = pct(conv, total)
        out.append(
            {
                "scoreRange": f"{lo}-{hi}",
                "total": total,
                "converted": conv,
                "probability": probability,
                "predictedConversions": round_half_up(total * probability / 100.0),
            }
        )
    return out


async def predictive_insights(session: AsyncSession, high_score: int = 70) -> list[dict[str, Any]]:
    is_high = Lead.score >= high_score
    row = (
        await session.execute(
            select(
                func.count(Lead.id),
                func.sum(case((is_high, 1), else_=0)),
                func.sum(case((is_high & (Lead.status == LeadStatus.new), 1), else_=0)),
                func.sum(case((is_high & (Lead.status == LeadStatus.converted), 1), else_=0)),
                func.avg(Lead.score),
            )
        )
    ).one()
    total, high, high_new, high_converted, avg = row
    total = int(total or 0)
    high = int(high or 0)
    high_new = int(high_new or 0)
    high_converted = int(high_converted or 0)
    avg = float(avg or 0)

    high_rate = pct(high_converted, high)

    return [
        {
            "title": "High-probability leads",
            "description": f"Leads scoring {high_score} or more",
            "value": high,
            "trend": "up" if high > total * 0.2 else "down",
            "trendValue": pct(high, total),
            "type": "success",
        },
        {
            "title": "Conversion rate (high probability)",
            "description": f"Conversion of leads scoring {high_score} or more",
            "value": f"{high_rate:.1f}%",
            "trend": "up" if high_rate > 20 else "neutral",
            "trendValue": high_rate,
            "type": "success" if high_rate > 20 else "warning",
        },
        {
            "title": "Uncontacted opportunities",
            "description": "High-probability leads still waiting for first contact",
            "value": high_new,
            "trend": "down" if high_new > 0 else "up",
            "trendValue": high_new,
            "type": "error" if high_new > 10 else "info",
        },
        {
            "title": "Average lead score",
            "description": "Mean score across all leads",
            "value": round_half_up(avg),
            "trend": "up" if avg > 50 else "down",
            "trendValue": avg,
            "type": "success" if avg > 50 else "warning",
        },
    ]


async def best_contact_times(session: AsyncSession) -> list[dict[str, Any]]:
    """Contact outcome by hour of first contact (UTC), ordered by hour."""
    hour = extract("hour", Lead.contacted_at).label("hour")
    stmt = (
        select(
            hour,
            func.count(Lead.id),
            func.sum(case((Lead.status == LeadStatus.converted, 1), else_=0)),
        )
        .where(Lead.contacted_at.is_not(None))
        .group_by(hour)
        .order_by(hour.asc())
    )
    out = []
    for h, attempts, conversions in (await session.execute(stmt)).all():
        attempts = int(attempts)
        conversions = int(conversions or 0)
        out.append(
            {
                "hour": f"{int(h):02d}:00",
                "attempts": attempts,
                "conversions": conversions,
                "successRate": round(pct(conversions, attempts), 1),
            }
        )
    return out


async def forecast_leads(
    session: AsyncSession,
    horizon: int = 7,
    history_days: int = 30,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    now = now or datetime.utcnow()
    start = window_start(now, history_days)

    rows = (
        await session.execute(
            select(Lead.date_key, func.count(Lead.id)).where(Lead.created_at >= start).group_by(Lead.date_key)
        )
    ).all()
    # only days that actually had leads feed the mean
    counts = [int(n) for _, n in rows]

    mean, points = project_forecast(counts, now.date(), horizon, rng)
    return {
        "avgDailyLeads": round_half_up(mean),
        "forecast": [
            {"date": p.date.isoformat(), "predicted": p.predicted, "lower": p.lower, "upper": p.upper}
            for p in points
        ],
    }


async def detect_anomalies(session: AsyncSession, stale_days: int = 7, now: datetime | None = None) -> list[dict[str, Any]]:
    now = now or datetime.utcnow()
    stale_before = now - timedelta(days=stale_days)

    row = (
        await session.execute(
            select(
                func.sum(case(((Lead.score >= ANOMALY_HIGH_SCORE) & (Lead.status == LeadStatus.unqualified), 1), else_=0)),
                func.sum(case(((Lead.score <= ANOMALY_LOW_SCORE) & (Lead.status == LeadStatus.converted), 1), else_=0)),
                func.sum(case(((Lead.status == LeadStatus.new) & (Lead.created_at <= stale_before), 1), else_=0)),
            )
        )
    ).one()
    high_unqualified, low_converted, stale = (int(v or 0) for v in row)

    out: list[dict[str, Any]] = []
    if high_unqualified > 0:
        out.append(
            {
                "type": "warning",
                "title": "High-score leads disqualified",
                "description": f"{high_unqualified} leads scoring >= {ANOMALY_HIGH_SCORE} were marked unqualified",
                "count": high_unqualified,
                "action": "Review qualification criteria",
            }
        )
    if low_converted > 0:
        out.append(
            {
                "type": "info",
                "title": "Low-score conversions",
                "description": f"{low_converted} leads scoring <= {ANOMALY_LOW_SCORE} were converted",
                "count": low_converted,
                "action": "Tune the scoring model",
            }
        )
    if stale > 0:
        out.append(
            {
                "type": "error",
                "title": f"Leads uncontacted for {stale_days}+ days",
                "description": f"{stale} new leads have waited more than {stale_days} days for contact",
                "count": stale,
                "action": "Prioritise immediate contact",
            }
        )
    return out
