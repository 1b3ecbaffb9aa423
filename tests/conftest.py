# tests/conftest.py
from __future__ import annotations

from datetime import date, datetime

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from cortex.db import get_session
from cortex.domain.dates import date_key
from cortex.domain.pii import hash_pii
from cortex.entrypoints.fastapi_app import create_app
from cortex.models import AdSpend, Base, Campaign, LandingPage, Lead, LeadSource, LeadStatus
from cortex.services.demo_seed import seed_dimensions

# Fixed clock for report tests
NOW = datetime(2025, 3, 15, 12, 0, 0)


@pytest.fixture
async def engine():
    """
    Fresh in-memory DB per test. StaticPool makes all connections share the same
    in-memory database for the lifetime of this engine fixture.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def async_session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=True)


@pytest.fixture
async def session(async_session_maker):
    async with async_session_maker() as s:
        yield s


@pytest.fixture
async def dims(async_session_maker):
    """
    Seeds the dimension tables and returns natural key -> id maps:
    {"sources": {name: id}, "campaigns": {platform_campaign_id: id}, "pages": {page_type: id}}
    """
    async with async_session_maker() as s:
        await seed_dimensions(s)
        await s.commit()

        sources = dict((await s.execute(select(LeadSource.name, LeadSource.id))).all())
        campaigns = dict((await s.execute(select(Campaign.platform_campaign_id, Campaign.id))).all())
        pages = dict((await s.execute(select(LandingPage.page_type, LandingPage.id))).all())

    return {"sources": sources, "campaigns": campaigns, "pages": pages}


@pytest.fixture
def add_lead():
    counter = {"n": 0}

    async def _add(
        session,
        *,
        created_at: datetime = NOW,
        status: LeadStatus = LeadStatus.new,
        score: int = 50,
        source_id: int | None = None,
        campaign_id: int | None = None,
        deal_value: float | None = None,
        contacted_at: datetime | None = None,
        qualified_at: datetime | None = None,
        converted_at: datetime | None = None,
        name_first: str | None = None,
        company_name: str | None = None,
    ) -> Lead:
        counter["n"] += 1
        lead = Lead(
            date_key=date_key(created_at),
            email_hash=hash_pii(f"lead{counter['n']}@example.com"),
            name_first=name_first or f"Lead{counter['n']}",
            company_name=company_name,
            status=status,
            score=score,
            source_id=source_id,
            campaign_id=campaign_id,
            deal_value=deal_value,
            created_at=created_at,
            contacted_at=contacted_at,
            qualified_at=qualified_at,
            converted_at=converted_at,
            updated_at=created_at,
        )
        session.add(lead)
        await session.flush()
        return lead

    return _add


@pytest.fixture
def add_spend():
    async def _add(
        session,
        *,
        day: date,
        campaign_id: int,
        spend: float,
        impressions: int = 0,
        clicks: int = 0,
        leads_platform: int = 0,
    ) -> AdSpend:
        row = AdSpend(
            spend_date=day,
            date_key=date_key(day),
            campaign_id=campaign_id,
            spend=spend,
            impressions=impressions,
            clicks=clicks,
            leads_platform=leads_platform,
        )
        session.add(row)
        await session.flush()
        return row

    return _add


@pytest.fixture
async def client(async_session_maker):
    app = create_app()

    async def _session_override():
        async with async_session_maker() as s:
            yield s

    app.dependency_overrides[get_session] = _session_override

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
