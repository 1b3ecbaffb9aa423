from datetime import datetime, timedelta

import pytest

from cortex.errors import NotFoundError
from cortex.models import LeadStatus
from cortex.services import campaigns

NOW = datetime(2025, 3, 15, 12, 0)
DAY = NOW - timedelta(days=2)


async def _scenario(session, dims, add_lead, add_spend):
    c = dims["campaigns"]
    # google_001: 4 leads, 1 converted worth 3000, 1 qualified; spend 500 + 500
    await add_lead(session, created_at=DAY, campaign_id=c["google_001"])
    await add_lead(session, created_at=DAY, campaign_id=c["google_001"])
    await add_lead(session, created_at=DAY, campaign_id=c["google_001"], status=LeadStatus.qualified)
    await add_lead(
        session, created_at=DAY, campaign_id=c["google_001"], status=LeadStatus.converted, deal_value=3000
    )
    await add_spend(session, day=DAY.date(), campaign_id=c["google_001"], spend=500, impressions=1000, clicks=10)
    await add_spend(session, day=NOW.date(), campaign_id=c["google_001"], spend=500, impressions=2000, clicks=30)

    # meta_001: 1 lead, spend 200
    await add_lead(session, created_at=DAY, campaign_id=c["meta_001"])
    await add_spend(session, day=DAY.date(), campaign_id=c["meta_001"], spend=200, impressions=500, clicks=5)

    # outside the window
    await add_lead(session, created_at=NOW - timedelta(days=60), campaign_id=c["meta_001"])
    await add_spend(session, day=(NOW - timedelta(days=60)).date(), campaign_id=c["meta_001"], spend=999)

    # organic lead, no campaign
    await add_lead(session, created_at=DAY)


@pytest.mark.asyncio
async def test_campaign_performance(session, dims, add_lead, add_spend):
    await _scenario(session, dims, add_lead, add_spend)

    rows = await campaigns.campaign_performance(session, days=30, now=NOW)

    assert len(rows) == 7  # every active campaign, even with no leads
    top = rows[0]
    assert top["campaign_id"] == dims["campaigns"]["google_001"]
    assert top["platform"] == "Google"
    assert top["leads"] == 4
    assert top["qualified"] == 2
    assert top["converted"] == 1
    assert top["spend"] == pytest.approx(1000.0)
    assert top["revenue"] == pytest.approx(3000.0)
    assert top["cpl"] == pytest.approx(250.0)
    assert top["conversionRate"] == pytest.approx(25.0)
    assert top["roi"] == pytest.approx(200.0)

    assert rows[1]["campaign_id"] == dims["campaigns"]["meta_001"]
    assert rows[1]["spend"] == pytest.approx(200.0)
    leads = [r["leads"] for r in rows]
    assert leads == sorted(leads, reverse=True)

    idle = next(r for r in rows if r["campaign_id"] == dims["campaigns"]["tiktok_001"])
    assert idle["leads"] == 0 and idle["cpl"] == 0 and idle["roi"] == 0


@pytest.mark.asyncio
async def test_platform_comparison(session, dims, add_lead, add_spend):
    await _scenario(session, dims, add_lead, add_spend)

    rows = await campaigns.platform_comparison(session, days=30, now=NOW)

    assert [r["platform"] for r in rows] == ["Meta", "Google", "TikTok"]
    meta, google, tiktok = rows
    assert google["leads"] == 4
    assert google["impressions"] == 3000
    assert google["clicks"] == 40
    assert google["roi"] == pytest.approx(200.0)
    assert meta["leads"] == 1
    assert meta["spend"] == pytest.approx(200.0)
    assert tiktok["leads"] == 0
    assert tiktok["spend"] == 0


@pytest.mark.asyncio
async def test_spend_over_time(session, dims, add_lead, add_spend):
    await _scenario(session, dims, add_lead, add_spend)

    rows = await campaigns.spend_over_time(session, days=30, now=NOW)

    assert [r["date"] for r in rows] == ["2025-03-13", "2025-03-15"]
    assert rows[0]["spend"] == pytest.approx(700.0)
    assert rows[0]["leads"] == 5  # organic lead not counted
    assert rows[0]["cpl"] == pytest.approx(140.0)
    assert rows[1]["leads"] == 0
    assert rows[1]["cpl"] == 0


@pytest.mark.asyncio
async def test_campaign_stats(session, dims, add_lead, add_spend):
    await _scenario(session, dims, add_lead, add_spend)

    stats = await campaigns.campaign_stats(session, days=30, now=NOW)

    assert stats["totalCampaigns"] == 7
    assert stats["totalSpend"] == pytest.approx(1200.0)
    assert stats["totalLeads"] == 5
    assert stats["totalRevenue"] == pytest.approx(3000.0)
    assert stats["avgCpl"] == pytest.approx(240.0)
    assert stats["roi"] == pytest.approx(150.0)


@pytest.mark.asyncio
async def test_campaign_trend(session, dims, add_lead, add_spend):
    await _scenario(session, dims, add_lead, add_spend)

    trend = await campaigns.campaign_trend(session, dims["campaigns"]["google_001"], days=30, now=NOW)
    assert [t["date"] for t in trend] == ["2025-03-13", "2025-03-15"]
    assert trend[1]["impressions"] == 2000

    with pytest.raises(NotFoundError):
        await campaigns.campaign_trend(session, 9999, days=30, now=NOW)
    with pytest.raises(NotFoundError):
        await campaigns.campaign_trend(session, 2**64, days=30, now=NOW)


@pytest.mark.asyncio
async def test_empty_store(session):
    assert await campaigns.campaign_performance(session, now=NOW) == []
    stats = await campaigns.campaign_stats(session, now=NOW)
    assert stats == {
        "totalCampaigns": 0,
        "totalSpend": 0,
        "totalLeads": 0,
        "totalRevenue": 0,
        "avgCpl": 0,
        "roi": 0,
    }
