# cortex/services/intake.py
from __future__ import annotations

import json
import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.dates import date_key
from ..domain.pii import hash_pii
from ..domain.scoring import SubmissionSignals, score_submission
from ..errors import InternalError, ValidationError
from ..models import Lead, LeadAttribution, LeadStatus, RawFormSubmission
from ..service_layer.unit_of_work import SqlAlchemyUnitOfWork
from .attribution import resolve_attribution

log = logging.getLogger(__name__)

UTM_FIELDS = ("utm_source", "utm_medium", "utm_campaign", "utm_content", "utm_term")
TRACKING_FIELDS = ("fbc", "fbp", "gclid")


@dataclass(frozen=True)
class IntakeResult:
    lead_id: int
    score: int


def _text(payload: dict[str, Any], key: str) -> str | None:
    v = payload.get(key)
    if v is None or v == "":
        return None
    s = str(v).strip()
    return s or None


def _first_name(name: str | None) -> str | None:
    if not name:
        return None
    parts = name.split()
    return parts[0] if parts else None


def validate_payload(payload: Any) -> str:
    """Returns the email or raises ValidationError."""
    if not isinstance(payload, dict):
        raise ValidationError("Payload must be a JSON object")
    email = payload.get("email")
    if not isinstance(email, str) or not email.strip():
        raise ValidationError("Email is required")
    return email


async def ingest_submission(
    session: AsyncSession,
    payload: dict[str, Any],
    *,
    rng: random.Random | None = None,
    now: datetime | None = None,
    submission_source: str = "landing_page",
) -> IntakeResult:
    """
    Turn one landing-page form post into a scored, attributed lead.

    Writes the lead, its raw submission audit row and (when a campaign
    matched) a last-click attribution, all in one transaction.
    """
    email = validate_payload(payload)
    now = now or datetime.utcnow()

    try:
        async with SqlAlchemyUnitOfWork(session) as uow:
            attribution = await resolve_attribution(
                uow.session,
                utm_source=_text(payload, "utm_source"),
                utm_medium=_text(payload, "utm_medium"),
                landing_page=_text(payload, "landing_page"),
            )

            score = score_submission(SubmissionSignals.from_payload(payload), rng=rng)
            phone = _text(payload, "phone")

            lead = Lead(
                date_key=date_key(now),
                email_hash=hash_pii(email),
                phone_hash=hash_pii(phone) if phone else None,
                name_first=_first_name(_text(payload, "name")),
                company_name=_text(payload, "company"),
                source_id=attribution.source_id,
                campaign_id=attribution.campaign_id,
                landing_page_id=attribution.landing_page_id,
                status=LeadStatus.new,
                score=score,
                created_at=now,
                updated_at=now,
                **{f: _text(payload, f) for f in UTM_FIELDS + TRACKING_FIELDS},
            )
            uow.session.add(lead)
            await uow.session.flush()

            uow.session.add(
                RawFormSubmission(
                    lead_id=lead.id,
                    submission_source=submission_source,
                    raw_payload_json=json.dumps(payload, ensure_ascii=False, default=str),
                    processed_status="success",
                    received_at=now,
                )
            )

            if attribution.campaign_id is not None:
                uow.session.add(
                    LeadAttribution(
                        lead_id=lead.id,
                        campaign_id=attribution.campaign_id,
                        attribution_model="last_click",
                        attribution_weight=1.0,
                        created_at=now,
                    )
                )
            await uow.session.flush()

            lead_id = lead.id
    except SQLAlchemyError as e:
        log.exception("lead intake failed; transaction rolled back")
        raise InternalError("Failed to store lead") from e

    log.info(
        "lead created id=%s score=%s source_id=%s campaign_id=%s",
        lead_id,
        score,
        attribution.source_id,
        attribution.campaign_id,
    )
    return IntakeResult(lead_id=lead_id, score=score)
