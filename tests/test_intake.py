import json
import random
from datetime import datetime

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from cortex.domain.pii import hash_pii
from cortex.errors import InternalError, ValidationError
from cortex.models import Lead, LeadAttribution, LeadStatus, RawFormSubmission
from cortex.services import intake
from cortex.services.intake import ingest_submission

NOW = datetime(2025, 3, 15, 9, 30)


@pytest.mark.asyncio
async def test_full_submission_creates_lead_audit_and_attribution(async_session_maker, dims):
    payload = {
        "email": "Maria@Example.com",
        "phone": "+55 11 99999-0000",
        "name": "Maria Silva",
        "company": "Acme",
        "utm_source": "google",
        "utm_medium": "cpc",
        "utm_campaign": "brand",
        "gclid": "abc123",
        "landing_page": "/lp/webinar",
    }
    async with async_session_maker() as session:
        result = await ingest_submission(session, payload, rng=random.Random(1), now=NOW)

    assert 20 <= result.score <= 100

    async with async_session_maker() as session:
        lead = (await session.execute(select(Lead).where(Lead.id == result.lead_id))).scalars().one()
        raw = (await session.execute(select(RawFormSubmission))).scalars().one()
        attrs = (await session.execute(select(LeadAttribution))).scalars().all()

    assert lead.status == LeadStatus.new
    assert lead.score == result.score
    assert lead.email_hash == hash_pii("maria@example.com")
    assert lead.phone_hash == hash_pii("+55 11 99999-0000")
    assert lead.name_first == "Maria"
    assert lead.company_name == "Acme"
    assert lead.date_key == 20250315
    assert lead.created_at == NOW
    assert lead.utm_campaign == "brand"
    assert lead.gclid == "abc123"
    assert lead.source_id == dims["sources"]["Google Ads"]
    assert lead.campaign_id == dims["campaigns"]["google_001"]
    assert lead.landing_page_id == dims["pages"]["webinar"]

    assert raw.lead_id == lead.id
    assert raw.processed_status == "success"
    assert raw.submission_source == "landing_page"
    assert json.loads(raw.raw_payload_json) == payload

    assert len(attrs) == 1
    assert attrs[0].lead_id == lead.id
    assert attrs[0].attribution_model == "last_click"
    assert attrs[0].attribution_weight == 1.0


@pytest.mark.asyncio
async def test_minimal_submission(async_session_maker, dims):
    async with async_session_maker() as session:
        result = await ingest_submission(session, {"email": "x@y.com"}, now=NOW)

    async with async_session_maker() as session:
        lead = (await session.execute(select(Lead).where(Lead.id == result.lead_id))).scalars().one()
        n_attr = (await session.execute(select(func.count(LeadAttribution.id)))).scalar_one()

    assert lead.phone_hash is None
    assert lead.campaign_id is None
    assert lead.source_id == dims["sources"]["Direct"]
    assert n_attr == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{}, {"email": ""}, {"email": "   "}, {"email": 42}, ["not", "a", "dict"], None])
async def test_invalid_payload_is_rejected(async_session_maker, payload):
    async with async_session_maker() as session:
        with pytest.raises(ValidationError):
            await ingest_submission(session, payload, now=NOW)

        n = (await session.execute(select(func.count(Lead.id)))).scalar_one()
    assert n == 0


@pytest.mark.asyncio
async def test_failure_mid_intake_rolls_everything_back(async_session_maker, dims, monkeypatch):
    def _boom(**kwargs):
        raise RuntimeError("attribution store down")

    monkeypatch.setattr(intake, "LeadAttribution", _boom)

    async with async_session_maker() as session:
        with pytest.raises(RuntimeError):
            await ingest_submission(session, {"email": "a@b.com", "utm_source": "google", "utm_medium": "cpc"}, now=NOW)

    async with async_session_maker() as session:
        leads = (await session.execute(select(func.count(Lead.id)))).scalar_one()
        raws = (await session.execute(select(func.count(RawFormSubmission.id)))).scalar_one()

    assert leads == 0
    assert raws == 0


@pytest.mark.asyncio
async def test_store_failure_surfaces_as_internal_error(async_session_maker, dims, monkeypatch):
    def _locked(**kwargs):
        raise OperationalError("INSERT INTO lead_attributions", {}, Exception("database is locked"))

    monkeypatch.setattr(intake, "LeadAttribution", _locked)

    async with async_session_maker() as session:
        with pytest.raises(InternalError) as exc_info:
            await ingest_submission(session, {"email": "a@b.com", "utm_source": "google", "utm_medium": "cpc"}, now=NOW)

    assert exc_info.value.status_code == 500
    assert exc_info.value.message == "Failed to store lead"

    async with async_session_maker() as session:
        assert (await session.execute(select(func.count(Lead.id)))).scalar_one() == 0
