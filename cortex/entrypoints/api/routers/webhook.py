# cortex/entrypoints/api/routers/webhook.py
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_session
from ....schemas import WebhookLeadOut
from ....services.intake import ingest_submission

router = APIRouter(prefix="/api", tags=["webhook"])


@router.post("/webhook/lead", response_model=WebhookLeadOut)
async def receive_lead(
    payload: Any = Body(default=None),
    session: AsyncSession = Depends(get_session),
) -> WebhookLeadOut:
    # intake commits its own transaction
    result = await ingest_submission(session, payload)
    return WebhookLeadOut(success=True, leadId=result.lead_id, score=result.score)
