# cortex/services/analytics.py
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.dates import date_key, iter_days, window_start
from ..domain.ratios import cpl, pct, roi
from ..models import AdSpend, Campaign, Lead, LeadSource, LeadStatus
from .lead_counts import status_counts, status_counts_by

DEFAULT_COLOR = "#64748b"

SOURCE_COLORS: dict[str, str] = {
    "Meta Ads": "#7c3aed",
    "Google Ads": "#3b82f6",
    "TikTok Ads": "#ec4899",
    "Organic Search": "#22c55e",
    "Organic Social": "#22d3ee",
    "Direct": "#f59e0b",
    "Referral": "#8b5cf6",
    "Email": "#06b6d4",
    "Other": DEFAULT_COLOR,
}

# (name, color) in funnel order
FUNNEL_STAGES: list[tuple[str, str]] = [
    ("Total", "#7c3aed"),
    ("Contacted", "#3b82f6"),
    ("Qualified", "#22d3ee"),
    ("Converted", "#22c55e"),
]


async def total_spend(session: AsyncSession, start: datetime, end: datetime | None = None) -> float:
    stmt = select(func.sum(AdSpend.spend)).where(AdSpend.spend_date >= start.date())
    if end is not None:
        stmt = stmt.where(AdSpend.spend_date < end.date())
    return float((await session.execute(stmt)).scalar_one_or_none() or 0)


async def period_metrics(session: AsyncSession, start: datetime, end: datetime | None = None) -> dict[str, Any]:
    conds = [Lead.created_at >= start]
    if end is not None:
        conds.append(Lead.created_at < end)

    counts = await status_counts(session, *conds)
    spend = await total_spend(session, start, end)

    total = counts.total
    # KPI "qualified" = currently sitting at qualified, not "reached qualified"
    qualified = counts.get(LeadStatus.qualified)
    converted = counts.converted
    return {
        "totalLeads": total,
        "qualifiedLeads": qualified,
        "convertedLeads": converted,
        "conversionRate": pct(converted, total),
        "qualificationRate": pct(qualified, total),
        "totalSpend": spend,
        "cpl": cpl(spend, total),
        "revenue": counts.revenue,
        "roi": roi(counts.revenue, spend),
    }


async def dashboard_kpis(session: AsyncSession, days: int = 30, now: datetime | None = None) -> dict[str, Any]:
    """
    Headline KPIs for the last ``days`` days, plus the same block for the
    window of equal length right before it (for trend arrows).
    """
    now = now or datetime.utcnow()
    start = window_start(now, days)
    previous_start = window_start(start, days)

    current = await period_metrics(session, start)
    previous = await period_metrics(session, previous_start, start)

    return {
        **current,
        "previousLeads": previous["totalLeads"],
        "previousSpend": previous["totalSpend"],
        "previous": previous,
    }


async def daily_leads(session: AsyncSession, days: int = 30, now: datetime | None = None) -> list[dict[str, Any]]:
    """Dense per-day series: one entry for every date in [start, today], zeros included."""
    now = now or datetime.utcnow()
    start = window_start(now, days)

    by_day = await status_counts_by(session, Lead.date_key, Lead.created_at >= start)

    out: list[dict[str, Any]] = []
    for d in iter_days(start.date(), now.date()):
        c = by_day.get(date_key(d))
        out.append(
            {
                "date": d.isoformat(),
                "leads": c.total if c else 0,
                "qualified": c.qualified if c else 0,
                "converted": c.converted if c else 0,
            }
        )
    return out


async def source_distribution(session: AsyncSession) -> list[dict[str, Any]]:
    stmt = (
        select(LeadSource.name, func.count(Lead.id))
        .select_from(Lead)
        .outerjoin(LeadSource, LeadSource.id == Lead.source_id)
        .group_by(Lead.source_id, LeadSource.name)
    )
    rows = (await session.execute(stmt)).all()

    out = [
        {
            "name": name or "Unknown",
            "value": int(n),
            "color": SOURCE_COLORS.get(name or "Other", DEFAULT_COLOR),
        }
        for name, n in rows
        if n
    ]
    out.sort(key=lambda s: s["value"], reverse=True)
    return out


async def funnel_stages(session: AsyncSession) -> list[dict[str, Any]]:
    """All-time funnel; every stage is a share of the total lead count."""
    counts = await status_counts(session)
    values = [counts.total, counts.contacted, counts.qualified, counts.converted]
    total = counts.total

    return [
        {
            "name": name,
            "value": value,
            "percentage": 100.0 if i == 0 else pct(value, total),
            "color": color,
        }
        for i, ((name, color), value) in enumerate(zip(FUNNEL_STAGES, values))
    ]


async def top_campaigns(session: AsyncSession, limit: int = 5) -> list[dict[str, Any]]:
    leads = func.count(Lead.id).label("leads")
    stmt = (
        select(Campaign.id, Campaign.name, Campaign.platform, leads)
        .join(Lead, Lead.campaign_id == Campaign.id)
        .group_by(Campaign.id, Campaign.name, Campaign.platform)
        .order_by(desc(leads), Campaign.id.asc())
        .limit(limit)
    )
    rows = (await session.execute(stmt)).all()
    return [
        {
            "id": cid,
            "name": name or "Unknown",
            "platform": platform or "Unknown",
            "leads": int(n),
        }
        for cid, name, platform, n in rows
    ]
