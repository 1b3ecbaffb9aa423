# cortex/services/demo_seed.py
from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.dates import date_key, iter_days
from ..domain.pii import hash_pii
from ..domain.status import STAMP_FIELD
from ..models import AdSpend, Campaign, LandingPage, Lead, LeadAttribution, LeadSource, LeadStatus

log = logging.getLogger(__name__)

SOURCES: list[dict[str, Any]] = [
    {"name": "Meta Ads", "source_type": "Paid", "is_paid": True},
    {"name": "Google Ads", "source_type": "Paid", "is_paid": True},
    {"name": "TikTok Ads", "source_type": "Paid", "is_paid": True},
    {"name": "Organic Search", "source_type": "Organic", "is_paid": False},
    {"name": "Organic Social", "source_type": "Organic", "is_paid": False},
    {"name": "Direct", "source_type": "Direct", "is_paid": False},
    {"name": "Referral", "source_type": "Organic", "is_paid": False},
    {"name": "Email", "source_type": "Owned", "is_paid": False},
    {"name": "Other", "source_type": "Other", "is_paid": False},
]

CAMPAIGNS: list[dict[str, Any]] = [
    {"platform": "Meta", "platform_campaign_id": "meta_001", "name": "[META] Lead Capture - TOF",
     "objective": "LEAD_GENERATION", "funnel_stage": "tof", "utm_source": "facebook", "utm_medium": "cpc"},
    {"platform": "Meta", "platform_campaign_id": "meta_002", "name": "[META] Remarketing - MOF",
     "objective": "CONVERSIONS", "funnel_stage": "mof", "utm_source": "facebook", "utm_medium": "cpc"},
    {"platform": "Meta", "platform_campaign_id": "meta_003", "name": "[META] Lookalike - TOF",
     "objective": "LEAD_GENERATION", "funnel_stage": "tof", "utm_source": "instagram", "utm_medium": "cpc"},
    {"platform": "Google", "platform_campaign_id": "google_001", "name": "[GOOGLE] Search - Branded",
     "objective": "CONVERSIONS", "funnel_stage": "bof", "utm_source": "google", "utm_medium": "cpc"},
    {"platform": "Google", "platform_campaign_id": "google_002", "name": "[GOOGLE] Search - Generic",
     "objective": "LEAD_GENERATION", "funnel_stage": "tof", "utm_source": "google", "utm_medium": "cpc"},
    {"platform": "Google", "platform_campaign_id": "google_003", "name": "[GOOGLE] Display - Remarketing",
     "objective": "CONVERSIONS", "funnel_stage": "mof", "utm_source": "google", "utm_medium": "display"},
    {"platform": "TikTok", "platform_campaign_id": "tiktok_001", "name": "[TIKTOK] Awareness - Gen Z",
     "objective": "AWARENESS", "funnel_stage": "tof", "utm_source": "tiktok", "utm_medium": "cpc"},
]

LANDING_PAGES: list[dict[str, Any]] = [
    {"page_url": "https://demo.cortexanalytics.com.br/lp/principal", "page_name": "Main LP",
     "page_type": "form", "offer_name": "Free Consultation"},
    {"page_url": "https://demo.cortexanalytics.com.br/lp/ebook", "page_name": "Ebook LP",
     "page_type": "ebook", "offer_name": "Digital Marketing Ebook"},
    {"page_url": "https://demo.cortexanalytics.com.br/lp/webinar", "page_name": "Webinar LP",
     "page_type": "webinar", "offer_name": "Performance Webinar"},
]

_FIRST_NAMES = ["Joao", "Maria", "Pedro", "Ana", "Lucas", "Julia", "Gabriel", "Beatriz", "Rafael", "Larissa",
                "Bruno", "Camila", "Diego", "Fernanda", "Eduardo", "Helena", "Gustavo", "Isabela"]
_COMPANIES = ["Tech Solutions", "Digital Corp", "Inovare", "StartupXYZ", "Agencia Flow", "Fintech Pro",
              "SaaS Master", "Marketplace Plus", "Growth Hacking", "Performance Media", "Data Analytics"]
_JOB_TITLES = ["CEO", "CMO", "Marketing Manager", "Sales Coordinator", "Head of Growth", "Founder",
               "Marketing Analyst", "Head of Performance", "Product Manager"]

_STATUS_WEIGHTS: list[tuple[LeadStatus, float]] = [
    (LeadStatus.new, 0.35),
    (LeadStatus.contacted, 0.25),
    (LeadStatus.qualified, 0.20),
    (LeadStatus.converted, 0.12),
    (LeadStatus.unqualified, 0.08),
]

# hours after the previous stamp: (min, max)
_STAGE_DELAY_HOURS: dict[LeadStatus, tuple[int, int]] = {
    LeadStatus.contacted: (1, 24),
    LeadStatus.qualified: (1, 72),
    LeadStatus.converted: (24, 168),
}

# stages each final status passed through; demo unqualified leads were never worked
_HISTORY: dict[LeadStatus, tuple[LeadStatus, ...]] = {
    LeadStatus.contacted: (LeadStatus.contacted,),
    LeadStatus.qualified: (LeadStatus.contacted, LeadStatus.qualified),
    LeadStatus.converted: (LeadStatus.contacted, LeadStatus.qualified, LeadStatus.converted),
}


async def seed_dimensions(session: AsyncSession) -> dict[str, int]:
    """
    Upsert sources, campaigns and landing pages by their natural keys.
    Safe to run repeatedly; returns how many rows were inserted per table.
    """
    created = {"sources": 0, "campaigns": 0, "landing_pages": 0}

    for row in SOURCES:
        existing = (await session.execute(select(LeadSource).where(LeadSource.name == row["name"]))).scalars().first()
        if existing:
            existing.source_type = row["source_type"]
            existing.is_paid = row["is_paid"]
        else:
            session.add(LeadSource(**row))
            created["sources"] += 1

    for row in CAMPAIGNS:
        existing = (
            await session.execute(
                select(Campaign).where(Campaign.platform_campaign_id == row["platform_campaign_id"])
            )
        ).scalars().first()
        if existing:
            for k, v in row.items():
                setattr(existing, k, v)
        else:
            session.add(Campaign(is_active=True, **row))
            created["campaigns"] += 1

    for row in LANDING_PAGES:
        existing = (
            await session.execute(select(LandingPage).where(LandingPage.page_url == row["page_url"]))
        ).scalars().first()
        if existing:
            for k, v in row.items():
                setattr(existing, k, v)
        else:
            session.add(LandingPage(is_active=True, **row))
            created["landing_pages"] += 1

    await session.flush()
    return created


def _weighted_status(rng: random.Random) -> LeadStatus:
    r = rng.random()
    acc = 0.0
    for status, weight in _STATUS_WEIGHTS:
        acc += weight
        if r < acc:
            return status
    return LeadStatus.new


def _stamp_history(lead: Lead, rng: random.Random) -> None:
    last = lead.created_at
    for stage in _HISTORY.get(lead.status, ()):
        lo, hi = _STAGE_DELAY_HOURS[stage]
        last = last + timedelta(hours=rng.randint(lo, hi))
        setattr(lead, STAMP_FIELD[stage], last)
    lead.updated_at = last


async def seed_demo_leads(
    session: AsyncSession,
    count: int,
    *,
    days: int = 120,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> int:
    """
    Random leads spread over the last `days` days, with status history and
    last-click attributions for paid-source leads.

    Only runs against an empty lead table so reseeding never stacks duplicates.
    """
    rng = rng or random.Random()
    now = now or datetime.utcnow()

    existing = (await session.execute(select(func.count(Lead.id)))).scalar_one()
    if existing:
        log.info("leads table already has %s rows; skipping demo leads", existing)
        return 0

    sources = (await session.execute(select(LeadSource).order_by(LeadSource.id))).scalars().all()
    campaigns = (await session.execute(select(Campaign).order_by(Campaign.id))).scalars().all()
    pages = (await session.execute(select(LandingPage).order_by(LandingPage.id))).scalars().all()
    if not sources or not pages:
        raise RuntimeError("dimension tables are empty; run seed_dimensions first")

    leads: list[Lead] = []
    for _ in range(count):
        created_at = now - timedelta(seconds=rng.uniform(0, days * 86400))
        source = rng.choice(sources)
        campaign = rng.choice(campaigns) if source.is_paid and campaigns else None
        first = rng.choice(_FIRST_NAMES)
        company = rng.choice(_COMPANIES)
        email = f"{first.lower()}{rng.randint(1, 999)}@{company.lower().replace(' ', '')}.com.br"

        lead = Lead(
            date_key=date_key(created_at),
            email_hash=hash_pii(email),
            phone_hash=hash_pii(f"11{rng.randint(900000000, 999999999)}"),
            name_first=first,
            company_name=company,
            job_title=rng.choice(_JOB_TITLES),
            status=_weighted_status(rng),
            score=rng.randint(20, 100),
            source_id=source.id,
            campaign_id=campaign.id if campaign else None,
            landing_page_id=rng.choice(pages).id,
            utm_source=campaign.utm_source if campaign else (None if source.is_paid else source.name.lower()),
            utm_medium=campaign.utm_medium if campaign else None,
            created_at=created_at,
            updated_at=created_at,
        )
        _stamp_history(lead, rng)
        if lead.status == LeadStatus.converted:
            lead.deal_value = float(rng.randint(5000, 150000))
        leads.append(lead)

    session.add_all(leads)
    await session.flush()

    for lead in leads:
        if lead.campaign_id is not None:
            session.add(
                LeadAttribution(
                    lead_id=lead.id,
                    campaign_id=lead.campaign_id,
                    attribution_model="last_click",
                    attribution_weight=1.0,
                    attributed_value=lead.deal_value,
                    created_at=lead.created_at,
                )
            )
    await session.flush()
    return len(leads)


async def seed_demo_spend(
    session: AsyncSession,
    *,
    days: int = 120,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> int:
    """One ad-spend row per (day, campaign); days already present are left alone."""
    rng = rng or random.Random()
    now = now or datetime.utcnow()
    first = (now - timedelta(days=days)).date()

    campaigns = (await session.execute(select(Campaign).order_by(Campaign.id))).scalars().all()
    rows = (await session.execute(select(AdSpend.date_key, AdSpend.campaign_id).where(AdSpend.spend_date >= first))).all()
    have = {(k, cid) for k, cid in rows}

    n = 0
    for d in iter_days(first, now.date()):
        key = date_key(d)
        for c in campaigns:
            if (key, c.id) in have:
                continue
            impressions = rng.randint(1000, 50000)
            session.add(
                AdSpend(
                    spend_date=d,
                    date_key=key,
                    campaign_id=c.id,
                    impressions=impressions,
                    clicks=impressions * rng.randint(5, 30) // 1000,
                    spend=float(rng.randint(50, 500)),
                    leads_platform=rng.randint(0, 10),
                )
            )
            n += 1
    await session.flush()
    return n


async def seed_demo(
    session: AsyncSession,
    *,
    demo_leads: int = 0,
    days: int = 120,
    seed: int | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Dimensions always; random leads and spend only when demo_leads > 0.
    Caller commits.
    """
    created = await seed_dimensions(session)
    if demo_leads > 0:
        rng = random.Random(seed)
        now = now or datetime.utcnow()
        created["leads"] = await seed_demo_leads(session, demo_leads, days=days, rng=rng, now=now)
        created["ad_spend"] = await seed_demo_spend(session, days=days, rng=rng, now=now)
    log.info("demo seed done: %s", created)
    return created
