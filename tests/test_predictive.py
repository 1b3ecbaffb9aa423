import random
from datetime import datetime, timedelta

import pytest

from cortex.models import LeadStatus
from cortex.services import predictive

NOW = datetime(2025, 3, 15, 12, 0)


@pytest.mark.asyncio
async def test_score_distribution_bands(session, add_lead):
    for score in (0, 20, 21, 40, 55, 61, 80, 81, 100, 100):
        await add_lead(session, score=score)

    dist = await predictive.score_distribution(session)

    assert [d["range"] for d in dist] == ["0-20", "21-40", "41-60", "61-80", "81-100"]
    assert [d["count"] for d in dist] == [2, 2, 1, 2, 3]
    assert dist[4]["percentage"] == pytest.approx(30.0)
    assert dist[0]["color"] == "#ef4444"
    assert sum(d["count"] for d in dist) == 10


@pytest.mark.asyncio
async def test_conversion_probability(session, add_lead):
    for _ in range(3):
        await add_lead(session, score=90)
    await add_lead(session, score=85, status=LeadStatus.converted)
    await add_lead(session, score=10, status=LeadStatus.converted)

    rows = await predictive.conversion_probability(session)
    top = rows[-1]
    assert top["scoreRange"] == "81-100"
    assert top["total"] == 4
    assert top["converted"] == 1
    assert top["probability"] == pytest.approx(25.0)
    assert top["predictedConversions"] == 1
    assert rows[1]["probability"] == 0


@pytest.mark.asyncio
async def test_insights(session, add_lead):
    for _ in range(12):
        await add_lead(session, score=75)  # high score, status new
    await add_lead(session, score=90, status=LeadStatus.converted)
    await add_lead(session, score=30)

    cards = await predictive.predictive_insights(session, high_score=70)
    high, rate, uncontacted, avg = cards

    assert high["value"] == 13
    assert high["trend"] == "up"
    assert rate["value"] == "7.7%"
    assert rate["type"] == "warning"
    assert uncontacted["value"] == 12
    assert uncontacted["type"] == "error"
    assert avg["value"] == 73
    assert avg["type"] == "success"


@pytest.mark.asyncio
async def test_insights_on_empty_store(session):
    cards = await predictive.predictive_insights(session)
    assert len(cards) == 4
    assert cards[0]["trendValue"] == 0
    assert cards[3]["value"] == 0
    assert cards[3]["type"] == "warning"


@pytest.mark.asyncio
async def test_best_contact_times(session, add_lead):
    nine = datetime(2025, 3, 10, 9, 15)
    await add_lead(session, status=LeadStatus.contacted, contacted_at=nine)
    await add_lead(session, status=LeadStatus.converted, contacted_at=nine + timedelta(minutes=20))
    await add_lead(session, status=LeadStatus.converted, contacted_at=datetime(2025, 3, 10, 15, 0))
    await add_lead(session)  # never contacted

    rows = await predictive.best_contact_times(session)

    assert rows == [
        {"hour": "09:00", "attempts": 2, "conversions": 1, "successRate": 50.0},
        {"hour": "15:00", "attempts": 1, "conversions": 1, "successRate": 100.0},
    ]


@pytest.mark.asyncio
async def test_forecast_uses_days_with_leads(session, add_lead):
    for _ in range(2):
        await add_lead(session, created_at=NOW - timedelta(days=1))
    for _ in range(4):
        await add_lead(session, created_at=NOW - timedelta(days=3))
    await add_lead(session, created_at=NOW - timedelta(days=60))  # outside history

    out = await predictive.forecast_leads(session, horizon=3, history_days=30, now=NOW)

    assert out["avgDailyLeads"] == 3
    assert [f["date"] for f in out["forecast"]] == ["2025-03-16", "2025-03-17", "2025-03-18"]
    assert all(f["predicted"] == 3 for f in out["forecast"])
    assert out["forecast"][0]["lower"] == 2
    assert out["forecast"][0]["upper"] == 4


@pytest.mark.asyncio
async def test_forecast_with_rng_stays_near_mean(session, add_lead):
    for _ in range(10):
        await add_lead(session, created_at=NOW - timedelta(days=1))

    out = await predictive.forecast_leads(session, horizon=14, rng=random.Random(3), now=NOW)
    assert all(8 <= f["predicted"] <= 12 for f in out["forecast"])


@pytest.mark.asyncio
async def test_forecast_empty(session):
    out = await predictive.forecast_leads(session, horizon=7, now=NOW)
    assert out["avgDailyLeads"] == 0
    assert len(out["forecast"]) == 7


@pytest.mark.asyncio
async def test_anomalies(session, add_lead):
    await add_lead(session, score=85, status=LeadStatus.unqualified)
    await add_lead(session, score=25, status=LeadStatus.converted)
    await add_lead(session, score=60, created_at=NOW - timedelta(days=8))
    await add_lead(session, score=60, created_at=NOW - timedelta(days=2))  # still fresh

    found = await predictive.detect_anomalies(session, stale_days=7, now=NOW)

    assert [(a["type"], a["count"]) for a in found] == [("warning", 1), ("info", 1), ("error", 1)]
    assert all(set(a) == {"type", "title", "description", "count", "action"} for a in found)


@pytest.mark.asyncio
async def test_no_anomalies(session, add_lead):
    await add_lead(session, score=60, created_at=NOW)
    assert await predictive.detect_anomalies(session, now=NOW) == []
