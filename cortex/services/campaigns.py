# cortex/services/campaigns.py
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.dates import from_date_key, window_start
from ..domain.ratios import cpl, pct, roi
from ..errors import NotFoundError
from ..models import AdSpend, Campaign, Lead, Platform, is_row_id
from .analytics import total_spend
from .lead_counts import StatusCounts, status_counts, status_counts_by

PLATFORMS: list[str] = [p.value for p in Platform]


def _metrics(counts: StatusCounts | None, spend: float) -> dict[str, Any]:
    counts = counts or StatusCounts(by_status={})
    leads = counts.total
    return {
        "leads": leads,
        "qualified": counts.qualified,
        "converted": counts.converted,
        "spend": spend,
        "revenue": counts.revenue,
        "cpl": cpl(spend, leads),
        "conversionRate": pct(counts.converted, leads),
        "roi": roi(counts.revenue, spend),
    }


async def _counts_by_campaign(session: AsyncSession, start: datetime) -> dict[int, StatusCounts]:
    return await status_counts_by(
        session, Lead.campaign_id, Lead.created_at >= start, Lead.campaign_id.is_not(None)
    )


async def _spend_by_campaign(session: AsyncSession, start: datetime) -> dict[int, tuple[float, int, int]]:
    """campaign_id -> (spend, impressions, clicks) over the window."""
    stmt = (
        select(
            AdSpend.campaign_id,
            func.sum(AdSpend.spend),
            func.sum(AdSpend.impressions),
            func.sum(AdSpend.clicks),
        )
        .where(AdSpend.spend_date >= start.date())
        .group_by(AdSpend.campaign_id)
    )
    return {
        cid: (float(s or 0), int(imp or 0), int(clk or 0))
        for cid, s, imp, clk in (await session.execute(stmt)).all()
    }


async def campaign_performance(session: AsyncSession, days: int = 30, now: datetime | None = None) -> list[dict[str, Any]]:
    now = now or datetime.utcnow()
    start = window_start(now, days)

    campaigns = (await session.execute(select(Campaign).where(Campaign.is_active == True))).scalars().all()  # noqa: E712
    counts = await _counts_by_campaign(session, start)
    spend = await _spend_by_campaign(session, start)

    out = []
    for c in campaigns:
        spent = spend.get(c.id, (0.0, 0, 0))[0]
        out.append(
            {
                "campaign_id": c.id,
                "platform": c.platform,
                "campaign_name": c.name or "Unknown Campaign",
                "funnel_stage": c.funnel_stage or "tof",
                "is_active": c.is_active,
                **_metrics(counts.get(c.id), spent),
            }
        )
    # stable: ties keep campaign id order
    out.sort(key=lambda r: (-r["leads"], r["campaign_id"]))
    return out


async def platform_comparison(session: AsyncSession, days: int = 30, now: datetime | None = None) -> list[dict[str, Any]]:
    """One row per ad platform (Meta, Google, TikTok), active or not, summed over its campaigns."""
    now = now or datetime.utcnow()
    start = window_start(now, days)

    platform_of = dict((await session.execute(select(Campaign.id, Campaign.platform))).all())
    counts = await _counts_by_campaign(session, start)
    spend = await _spend_by_campaign(session, start)

    merged: dict[str, StatusCounts] = {p: StatusCounts(by_status={}) for p in PLATFORMS}
    totals: dict[str, list[float]] = {p: [0.0, 0, 0] for p in PLATFORMS}

    for cid, sc in counts.items():
        bucket = merged.get(platform_of.get(cid))
        if bucket is None:
            continue
        for status, n in sc.by_status.items():
            bucket.by_status[status] = bucket.get(status) + n
        bucket.revenue += sc.revenue

    for cid, (s, imp, clk) in spend.items():
        t = totals.get(platform_of.get(cid))
        if t is None:
            continue
        t[0] += s
        t[1] += imp
        t[2] += clk

    out = []
    for p in PLATFORMS:
        spent, impressions, clicks = totals[p]
        out.append(
            {
                "platform": p,
                **_metrics(merged[p], spent),
                "impressions": int(impressions),
                "clicks": int(clicks),
            }
        )
    return out


async def spend_over_time(session: AsyncSession, days: int = 30, now: datetime | None = None) -> list[dict[str, Any]]:
    """
    Daily spend across all campaigns, only for days that have spend rows.
    `leads` counts campaign-attributed leads created that day.
    """
    now = now or datetime.utcnow()
    start = window_start(now, days)

    spend_rows = (
        await session.execute(
            select(
                AdSpend.date_key,
                func.sum(AdSpend.spend),
                func.sum(AdSpend.impressions),
                func.sum(AdSpend.clicks),
            )
            .where(AdSpend.spend_date >= start.date())
            .group_by(AdSpend.date_key)
            .order_by(AdSpend.date_key.asc())
        )
    ).all()

    lead_rows = (
        await session.execute(
            select(Lead.date_key, func.count(Lead.id))
            .where(Lead.created_at >= start, Lead.campaign_id.is_not(None))
            .group_by(Lead.date_key)
        )
    ).all()
    leads_by_day = {k: int(n) for k, n in lead_rows}

    out = []
    for key, s, imp, clk in spend_rows:
        spent = float(s or 0)
        leads = leads_by_day.get(key, 0)
        out.append(
            {
                "date": from_date_key(key).isoformat(),
                "spend": spent,
                "impressions": int(imp or 0),
                "clicks": int(clk or 0),
                "leads": leads,
                "cpl": cpl(spent, leads),
            }
        )
    return out


async def campaign_stats(session: AsyncSession, days: int = 30, now: datetime | None = None) -> dict[str, Any]:
    now = now or datetime.utcnow()
    start = window_start(now, days)

    active = (
        await session.execute(select(func.count(Campaign.id)).where(Campaign.is_active == True))  # noqa: E712
    ).scalar_one()
    spent = await total_spend(session, start)
    counts = await status_counts(session, Lead.created_at >= start, Lead.campaign_id.is_not(None))

    return {
        "totalCampaigns": int(active),
        "totalSpend": spent,
        "totalLeads": counts.total,
        "totalRevenue": counts.revenue,
        "avgCpl": cpl(spent, counts.total),
        "roi": roi(counts.revenue, spent),
    }


async def campaign_trend(
    session: AsyncSession, campaign_id: int, days: int = 30, now: datetime | None = None
) -> list[dict[str, Any]]:
    now = now or datetime.utcnow()
    start = window_start(now, days)

    exists = None
    if is_row_id(campaign_id):
        exists = (await session.execute(select(Campaign.id).where(Campaign.id == campaign_id))).scalar_one_or_none()
    if exists is None:
        raise NotFoundError("Campaign not found")

    rows = (
        await session.execute(
            select(AdSpend)
            .where(AdSpend.campaign_id == campaign_id, AdSpend.spend_date >= start.date())
            .order_by(AdSpend.spend_date.asc())
        )
    ).scalars().all()

    return [
        {
            "date": r.spend_date.isoformat(),
            "spend": float(r.spend or 0),
            "impressions": int(r.impressions or 0),
            "clicks": int(r.clicks or 0),
            "leads": r.leads_platform,
        }
        for r in rows
    ]
