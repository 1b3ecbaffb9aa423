# cortex/services/lead_counts.py
"""Grouped lead counts shared by the report modules (one GROUP BY per call)."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Lead, LeadStatus


@dataclass
class StatusCounts:
    by_status: dict[LeadStatus, int]
    revenue: float = 0.0  # sum(deal_value) over converted leads

    def get(self, status: LeadStatus) -> int:
        return self.by_status.get(status, 0)

    @property
    def total(self) -> int:
        return sum(self.by_status.values())

    @property
    def contacted(self) -> int:
        # reached contacted or beyond
        return self.get(LeadStatus.contacted) + self.qualified

    @property
    def qualified(self) -> int:
        return self.get(LeadStatus.qualified) + self.converted

    @property
    def converted(self) -> int:
        return self.get(LeadStatus.converted)


async def status_counts(session: AsyncSession, *conditions: Any) -> StatusCounts:
    stmt = select(Lead.status, func.count(Lead.id), func.sum(Lead.deal_value)).group_by(Lead.status)
    if conditions:
        stmt = stmt.where(*conditions)
    rows = (await session.execute(stmt)).all()

    by_status: dict[LeadStatus, int] = {}
    revenue = 0.0
    for status, n, value_sum in rows:
        by_status[status] = int(n)
        if status == LeadStatus.converted:
            revenue = float(value_sum or 0)
    return StatusCounts(by_status=by_status, revenue=revenue)


async def status_counts_by(session: AsyncSession, key: Any, *conditions: Any) -> dict[Any, StatusCounts]:
    """Same as status_counts, but split by an extra column (campaign_id, source_id, date_key...)."""
    stmt = select(key, Lead.status, func.count(Lead.id), func.sum(Lead.deal_value)).group_by(key, Lead.status)
    if conditions:
        stmt = stmt.where(*conditions)
    rows = (await session.execute(stmt)).all()

    out: dict[Any, StatusCounts] = {}
    for k, status, n, value_sum in rows:
        sc = out.setdefault(k, StatusCounts(by_status={}))
        sc.by_status[status] = int(n)
        if status == LeadStatus.converted:
            sc.revenue = float(value_sum or 0)
    return out
