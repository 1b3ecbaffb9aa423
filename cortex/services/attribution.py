# cortex/services/attribution.py
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Campaign, LandingPage, LeadSource

DIRECT_SOURCE = "Direct"
OTHER_SOURCE = "Other"

# utm_source (lowercased) -> lead source name
SOURCE_MAP: dict[str, str] = {
    "facebook": "Meta Ads",
    "instagram": "Meta Ads",
    "meta": "Meta Ads",
    "google": "Google Ads",
    "tiktok": "TikTok Ads",
    "organic": "Organic Search",
}


@dataclass(frozen=True)
class Attribution:
    source_id: int | None
    campaign_id: int | None
    landing_page_id: int | None


def source_name_for(utm_source: str | None) -> str:
    if not utm_source:
        return DIRECT_SOURCE
    return SOURCE_MAP.get(utm_source.strip().lower(), OTHER_SOURCE)


async def _source_id_by_name(session: AsyncSession, name: str) -> int | None:
    return (
        await session.execute(select(LeadSource.id).where(LeadSource.name == name).limit(1))
    ).scalar_one_or_none()


async def resolve_source_id(session: AsyncSession, utm_source: str | None) -> int | None:
    name = source_name_for(utm_source)
    source_id = await _source_id_by_name(session, name)
    if source_id is None and name != DIRECT_SOURCE:
        # unknown dimension row -> same bucket as no utm at all
        source_id = await _source_id_by_name(session, DIRECT_SOURCE)
    return source_id


async def resolve_campaign_id(session: AsyncSession, utm_source: str | None, utm_medium: str | None) -> int | None:
    if not utm_source or not utm_medium:
        return None
    stmt = (
        select(Campaign.id)
        .where(Campaign.utm_source == utm_source)
        .where(Campaign.utm_medium == utm_medium)
        .order_by(Campaign.id.asc())
        .limit(1)
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def resolve_landing_page_id(session: AsyncSession, landing_page: str | None) -> int | None:
    if landing_page:
        stmt = (
            select(LandingPage.id)
            .where(LandingPage.page_url.contains(landing_page, autoescape=True))
            .order_by(LandingPage.id.asc())
            .limit(1)
        )
        found = (await session.execute(stmt)).scalar_one_or_none()
        if found is not None:
            return found

    # default page = first one registered
    return (
        await session.execute(select(LandingPage.id).order_by(LandingPage.id.asc()).limit(1))
    ).scalar_one_or_none()


async def resolve_attribution(
    session: AsyncSession,
    utm_source: str | None,
    utm_medium: str | None,
    landing_page: str | None,
) -> Attribution:
    """
    Map UTM params + landing path onto existing dimension rows.
    Read-only: unknown values fall through to Other / Direct / default page.
    """
    return Attribution(
        source_id=await resolve_source_id(session, utm_source),
        campaign_id=await resolve_campaign_id(session, utm_source, utm_medium),
        landing_page_id=await resolve_landing_page_id(session, landing_page),
    )
