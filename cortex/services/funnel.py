# cortex/services/funnel.py
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.ratios import pct
from ..models import Lead, LeadSource, LeadStatus
from .analytics import daily_leads, funnel_stages
from .lead_counts import status_counts, status_counts_by


def _hours(later: datetime | None, earlier: datetime | None) -> float | None:
    if later is None or earlier is None:
        return None
    return (later - earlier).total_seconds() / 3600.0


def _mean(values: list[float]) -> float | None:
    if not values:
        return None
    return round(sum(values) / len(values), 1)


async def stage_durations(session: AsyncSession) -> list[float | None]:
    """
    Mean hours spent reaching each funnel stage from the stage before it.

    A lead that skipped a stage is measured from the latest earlier stamp it
    does have (created_at at worst). Returns [None, contacted, qualified, converted].
    """
    stmt = select(Lead.created_at, Lead.contacted_at, Lead.qualified_at, Lead.converted_at).where(
        or_(
            Lead.contacted_at.is_not(None),
            Lead.qualified_at.is_not(None),
            Lead.converted_at.is_not(None),
        )
    )
    rows = (await session.execute(stmt)).all()

    to_contacted: list[float] = []
    to_qualified: list[float] = []
    to_converted: list[float] = []
    for created, contacted, qualified, converted in rows:
        h = _hours(contacted, created)
        if h is not None:
            to_contacted.append(h)
        h = _hours(qualified, contacted or created)
        if h is not None:
            to_qualified.append(h)
        h = _hours(converted, qualified or contacted or created)
        if h is not None:
            to_converted.append(h)

    return [None, _mean(to_contacted), _mean(to_qualified), _mean(to_converted)]


async def funnel_analysis(session: AsyncSession) -> list[dict[str, Any]]:
    stages = await funnel_stages(session)
    durations = await stage_durations(session)

    previous = None
    for stage, avg in zip(stages, durations):
        stage["conversionFromPrevious"] = 100.0 if previous is None else pct(stage["value"], previous)
        stage["avgTime"] = avg
        previous = stage["value"]
    return stages


async def funnel_by_source(session: AsyncSession) -> list[dict[str, Any]]:
    by_source = await status_counts_by(session, Lead.source_id, Lead.source_id.is_not(None))
    names = dict((await session.execute(select(LeadSource.id, LeadSource.name))).all())

    out = []
    for source_id, c in by_source.items():
        if not c.total:
            continue
        out.append(
            {
                "source": names.get(source_id, "Unknown"),
                "total": c.total,
                "contacted": c.contacted,
                "qualified": c.qualified,
                "converted": c.converted,
                "contactRate": pct(c.contacted, c.total),
                "qualificationRate": pct(c.qualified, c.contacted),
                "conversionRate": pct(c.converted, c.total),
            }
        )
    out.sort(key=lambda r: (-r["total"], r["source"]))
    return out


async def conversion_trend(session: AsyncSession, days: int = 30, now: datetime | None = None) -> list[dict[str, Any]]:
    series = await daily_leads(session, days, now)
    for day in series:
        day["conversionRate"] = pct(day["converted"], day["leads"])
    return series


async def drop_off_analysis(session: AsyncSession) -> dict[str, Any]:
    counts = await status_counts(session)
    total = counts.total
    unqualified = counts.get(LeadStatus.unqualified)
    stuck_new = counts.get(LeadStatus.new)
    stuck_contacted = counts.get(LeadStatus.contacted)

    return {
        "total": total,
        "unqualified": unqualified,
        "stuckAtNew": stuck_new,
        "stuckAtContacted": stuck_contacted,
        "unqualifiedRate": pct(unqualified, total),
        "stuckAtNewRate": pct(stuck_new, total),
        "stuckAtContactedRate": pct(stuck_contacted, total),
    }
