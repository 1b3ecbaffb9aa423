# cortex/entrypoints/api/routers/leads.py
from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_session
from ....config import settings
from ....domain.status import parse_status
from ....errors import ValidationError
from ....models import MAX_ROW_ID, LeadStatus
from ....schemas import (
    AttributionOut,
    BulkUpdateOut,
    CampaignOut,
    LeadDetailOut,
    LeadListOut,
    LeadOut,
    LeadPatch,
    Pagination as PaginationOut,
    SourceOut,
)
from ....services import leads as svc

router = APIRouter(prefix="/api", tags=["leads"])


def _status(raw: Any) -> LeadStatus:
    try:
        return parse_status(raw)
    except ValueError as e:
        raise ValidationError(str(e))


def _detail_out(detail: svc.LeadDetail) -> LeadDetailOut:
    lead = detail.row[0]
    base = LeadOut.from_row(detail.row)
    return LeadDetailOut(
        **base.model_dump(),
        fbc=lead.fbc,
        fbp=lead.fbp,
        gclid=lead.gclid,
        attributions=[
            AttributionOut(
                id=a.id,
                campaign_id=a.campaign_id,
                campaign_name=c.name if c else None,
                attribution_model=a.attribution_model,
                attribution_weight=a.attribution_weight,
                attributed_value=a.attributed_value,
                created_at=a.created_at,
            )
            for a, c in detail.attributions
        ],
    )


@router.get("/leads", response_model=LeadListOut)
async def list_leads(
    page: int = Query(1, ge=1, le=MAX_ROW_ID // settings.MAX_PAGE_SIZE),
    limit: int = Query(20, ge=1, le=settings.MAX_PAGE_SIZE),
    sort_by: str = Query("created_at", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    search: str | None = Query(default=None),
    status: str | None = Query(default=None),
    source: int | None = Query(default=None, ge=1, le=MAX_ROW_ID),
    campaign: int | None = Query(default=None, ge=1, le=MAX_ROW_ID),
    score_min: int | None = Query(default=None, alias="scoreMin", ge=0, le=100),
    score_max: int | None = Query(default=None, alias="scoreMax", ge=0, le=100),
    date_from: datetime | None = Query(default=None, alias="dateFrom"),
    date_to: datetime | None = Query(default=None, alias="dateTo"),
    session: AsyncSession = Depends(get_session),
) -> LeadListOut:
    filters = svc.LeadFilters(
        search=search or None,
        status=_status(status) if status else None,
        source_id=source,
        campaign_id=campaign,
        score_min=score_min,
        score_max=score_max,
        date_from=date_from,
        date_to=date_to,
    )
    result = await svc.list_leads(
        session,
        filters,
        svc.Pagination(page=page, limit=limit, sort_by=sort_by, sort_order=sort_order.lower()),
    )

    sources = await svc.list_sources(session)
    campaigns = await svc.list_active_campaigns(session)
    stats = await svc.lead_stats(session)

    return LeadListOut(
        leads=[LeadOut.from_row(r) for r in result.rows],
        pagination=PaginationOut(
            page=result.page,
            limit=result.limit,
            total=result.total,
            totalPages=result.total_pages,
        ),
        sources=[SourceOut.model_validate(s) for s in sources],
        campaigns=[CampaignOut.model_validate(c) for c in campaigns],
        stats=stats,
    )


@router.patch("/leads", response_model=BulkUpdateOut)
async def bulk_update(
    body: Any = Body(default=None),
    session: AsyncSession = Depends(get_session),
) -> BulkUpdateOut:
    if not isinstance(body, dict):
        raise ValidationError("Body must be a JSON object")

    lead_ids = body.get("leadIds")
    if not isinstance(lead_ids, list):
        raise ValidationError("leadIds must be an array")
    if any(isinstance(i, bool) or not isinstance(i, int) for i in lead_ids):
        raise ValidationError("leadIds must contain integer ids")
    if not body.get("status"):
        raise ValidationError("status is required")
    status = _status(body["status"])

    updated, skipped = await svc.bulk_update_status(session, lead_ids, status)
    await session.commit()
    return BulkUpdateOut(success=True, updated=len(updated), skipped=skipped)


@router.get("/leads/{lead_id}", response_model=LeadDetailOut)
async def get_lead(lead_id: int, session: AsyncSession = Depends(get_session)) -> LeadDetailOut:
    return _detail_out(await svc.get_lead(session, lead_id))


@router.patch("/leads/{lead_id}", response_model=LeadDetailOut)
async def update_lead(
    lead_id: int,
    body: LeadPatch,
    session: AsyncSession = Depends(get_session),
) -> LeadDetailOut:
    if body.status is None and body.score is None:
        raise ValidationError("status or score is required")
    if body.deal_value is not None and body.status is None:
        raise ValidationError("deal_value must be sent together with status")

    if body.status is not None:
        await svc.update_lead_status(session, lead_id, _status(body.status), deal_value=body.deal_value)
    if body.score is not None:
        await svc.update_lead_score(session, lead_id, body.score)
    await session.commit()

    return _detail_out(await svc.get_lead(session, lead_id))
