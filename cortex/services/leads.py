# cortex/services/leads.py
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Sequence

from sqlalchemy import Select, asc, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.ratios import round_half_up
from ..domain.status import STAMP_FIELD, transition_error
from ..errors import NotFoundError, ValidationError
from ..models import Campaign, LandingPage, Lead, LeadAttribution, LeadSource, LeadStatus, is_row_id

log = logging.getLogger(__name__)

# (lead, source, campaign, landing page); relations may be None
LeadRow = tuple[Lead, LeadSource | None, Campaign | None, LandingPage | None]

_SORT_COLUMNS: dict[str, Any] = {
    "created_at": Lead.created_at,
    "score": Lead.score,
    "lead_score": Lead.score,
    "status": Lead.status,
    "lead_status": Lead.status,
    "name_first": Lead.name_first,
    "company_name": Lead.company_name,
    "deal_value": Lead.deal_value,
    "source": LeadSource.name,
    "campaign": Campaign.name,
}


@dataclass
class LeadFilters:
    search: str | None = None
    status: LeadStatus | None = None
    source_id: int | None = None
    campaign_id: int | None = None
    score_min: int | None = None
    score_max: int | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None

    def conditions(self) -> list[Any]:
        conds: list[Any] = []
        if self.status is not None:
            conds.append(Lead.status == self.status)
        if self.source_id is not None:
            conds.append(Lead.source_id == self.source_id)
        if self.campaign_id is not None:
            conds.append(Lead.campaign_id == self.campaign_id)
        if self.score_min is not None:
            conds.append(Lead.score >= self.score_min)
        if self.score_max is not None:
            conds.append(Lead.score <= self.score_max)
        if self.date_from is not None:
            conds.append(Lead.created_at >= self.date_from)
        if self.date_to is not None:
            conds.append(Lead.created_at <= self.date_to)
        if self.search:
            conds.append(
                or_(
                    Lead.name_first.icontains(self.search, autoescape=True),
                    Lead.company_name.icontains(self.search, autoescape=True),
                    Lead.job_title.icontains(self.search, autoescape=True),
                )
            )
        return conds


@dataclass
class Pagination:
    page: int = 1
    limit: int = 20
    sort_by: str = "created_at"
    sort_order: str = "desc"

    def validate(self) -> None:
        if self.page < 1:
            raise ValidationError("page must be >= 1")
        if self.limit < 1:
            raise ValidationError("limit must be >= 1")
        if self.sort_by not in _SORT_COLUMNS:
            raise ValidationError(f"Unsupported sortBy '{self.sort_by}'")
        if self.sort_order not in ("asc", "desc"):
            raise ValidationError("sortOrder must be 'asc' or 'desc'")


@dataclass
class LeadPage:
    rows: list[LeadRow]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


@dataclass
class LeadDetail:
    row: LeadRow
    attributions: list[tuple[LeadAttribution, Campaign | None]] = field(default_factory=list)


def joined_leads() -> Select:
    return (
        select(Lead, LeadSource, Campaign, LandingPage)
        .outerjoin(LeadSource, LeadSource.id == Lead.source_id)
        .outerjoin(Campaign, Campaign.id == Lead.campaign_id)
        .outerjoin(LandingPage, LandingPage.id == Lead.landing_page_id)
    )


def _rows(result: Sequence[Any]) -> list[LeadRow]:
    return [(r[0], r[1], r[2], r[3]) for r in result]


async def list_leads(session: AsyncSession, filters: LeadFilters, pagination: Pagination) -> LeadPage:
    pagination.validate()
    conds = filters.conditions()

    order_col = _SORT_COLUMNS[pagination.sort_by]
    direction = asc if pagination.sort_order == "asc" else desc

    stmt = (
        joined_leads()
        .where(*conds)
        .order_by(direction(order_col), desc(Lead.id))
        .offset((pagination.page - 1) * pagination.limit)
        .limit(pagination.limit)
    )
    rows = _rows((await session.execute(stmt)).all())

    total = (await session.execute(select(func.count(Lead.id)).where(*conds))).scalar_one()
    return LeadPage(rows=rows, page=pagination.page, limit=pagination.limit, total=int(total))


async def recent_leads(session: AsyncSession, limit: int = 10) -> list[LeadRow]:
    stmt = joined_leads().order_by(desc(Lead.created_at), desc(Lead.id)).limit(limit)
    return _rows((await session.execute(stmt)).all())


async def get_lead(session: AsyncSession, lead_id: int) -> LeadDetail:
    if not is_row_id(lead_id):
        raise NotFoundError("Lead not found")
    row = (await session.execute(joined_leads().where(Lead.id == lead_id))).first()
    if row is None:
        raise NotFoundError("Lead not found")

    attrs = (
        await session.execute(
            select(LeadAttribution, Campaign)
            .outerjoin(Campaign, Campaign.id == LeadAttribution.campaign_id)
            .where(LeadAttribution.lead_id == lead_id)
            .order_by(LeadAttribution.id.asc())
        )
    ).all()
    return LeadDetail(row=(row[0], row[1], row[2], row[3]), attributions=[(a, c) for a, c in attrs])


async def _load_lead(session: AsyncSession, lead_id: int) -> Lead:
    if not is_row_id(lead_id):
        raise NotFoundError("Lead not found")
    lead = (await session.execute(select(Lead).where(Lead.id == lead_id))).scalars().first()
    if not lead:
        raise NotFoundError("Lead not found")
    return lead


def apply_status(lead: Lead, target: LeadStatus, now: datetime) -> None:
    """
    Move a lead to ``target`` in place.
    Stamps the stage timestamp the first time the stage is reached; never re-stamps.
    """
    reason = transition_error(lead.status, target)
    if reason:
        raise ValidationError(f"Invalid status transition for lead {lead.id}: {reason}")
    if lead.status == target:
        return

    stamp = STAMP_FIELD.get(target)
    if stamp and getattr(lead, stamp) is None:
        setattr(lead, stamp, now)
    lead.status = target
    lead.updated_at = now


async def update_lead_status(
    session: AsyncSession,
    lead_id: int,
    status: LeadStatus,
    *,
    deal_value: float | None = None,
    now: datetime | None = None,
) -> Lead:
    now = now or datetime.utcnow()
    lead = await _load_lead(session, lead_id)

    try:
        apply_status(lead, status, now)
    except ValidationError:
        log.warning("rejected status change lead_id=%s %s -> %s", lead_id, lead.status.value, status.value)
        raise

    if deal_value is not None:
        if lead.status != LeadStatus.converted:
            raise ValidationError("deal_value can only be set on a converted lead")
        if deal_value < 0:
            raise ValidationError("deal_value must be >= 0")
        lead.deal_value = float(deal_value)

    await session.flush()
    return lead


async def update_lead_score(session: AsyncSession, lead_id: int, score: int, *, now: datetime | None = None) -> Lead:
    if isinstance(score, bool) or not isinstance(score, int) or not 0 <= score <= 100:
        raise ValidationError("score must be an integer between 0 and 100")

    lead = await _load_lead(session, lead_id)
    lead.score = score
    lead.updated_at = now or datetime.utcnow()
    await session.flush()
    return lead


async def bulk_update_status(
    session: AsyncSession,
    lead_ids: Sequence[int],
    status: LeadStatus,
    *,
    now: datetime | None = None,
) -> tuple[list[int], list[int]]:
    """
    Returns (updated_ids, skipped_ids).

    Leads whose move would break the forward-only rule are skipped and left
    untouched; unknown ids are skipped too. The rest are updated together.
    """
    now = now or datetime.utcnow()
    wanted = list(dict.fromkeys(lead_ids))
    if not wanted:
        return [], []

    # ids no INTEGER key can hold are skipped without querying
    lookup = [i for i in wanted if is_row_id(i)]
    leads = (await session.execute(select(Lead).where(Lead.id.in_(lookup)))).scalars().all() if lookup else []
    by_id = {lead.id: lead for lead in leads}

    updated: list[int] = []
    skipped: list[int] = []
    for lid in wanted:
        lead = by_id.get(lid)
        if lead is None or transition_error(lead.status, status):
            skipped.append(lid)
            continue
        apply_status(lead, status, now)
        updated.append(lid)

    if skipped:
        log.warning("bulk status=%s skipped %d lead(s): %s", status.value, len(skipped), skipped[:20])

    await session.flush()
    return updated, skipped


async def list_sources(session: AsyncSession) -> list[LeadSource]:
    return list((await session.execute(select(LeadSource).order_by(LeadSource.name.asc()))).scalars().all())


async def list_active_campaigns(session: AsyncSession) -> list[Campaign]:
    stmt = select(Campaign).where(Campaign.is_active == True).order_by(Campaign.name.asc())  # noqa: E712
    return list((await session.execute(stmt)).scalars().all())


async def lead_stats(session: AsyncSession) -> dict[str, int]:
    rows = (await session.execute(select(Lead.status, func.count(Lead.id)).group_by(Lead.status))).all()
    counts = {status: int(n) for status, n in rows}
    avg = (await session.execute(select(func.avg(Lead.score)))).scalar_one_or_none()

    out = {"total": sum(counts.values())}
    for s in LeadStatus:
        out[s.value] = counts.get(s, 0)
    out["avgScore"] = round_half_up(float(avg or 0))
    return out
