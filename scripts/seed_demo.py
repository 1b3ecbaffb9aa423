# scripts/seed_demo.py
from __future__ import annotations

import argparse
import asyncio

from cortex.config import settings
from cortex.db import async_session, engine
from cortex.logging_config import configure_logging
from cortex.models import Base
from cortex.services.demo_seed import seed_demo


async def _ensure_schema() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def main() -> None:
    parser = argparse.ArgumentParser(description="Seed dimension tables, optionally with random demo data")
    parser.add_argument("--demo-leads", type=int, default=0, help="How many random leads to generate (0 = dimensions only)")
    parser.add_argument("--days", type=int, default=120, help="Spread demo leads/spend over this many past days")
    parser.add_argument("--seed", type=int, default=None, help="RNG seed for reproducible demo data")
    args = parser.parse_args()

    configure_logging(settings.LOG_LEVEL)
    await _ensure_schema()

    async with async_session() as session:
        created = await seed_demo(session, demo_leads=args.demo_leads, days=args.days, seed=args.seed)
        await session.commit()

    print(f"Seeded: {created}")


if __name__ == "__main__":
    asyncio.run(main())
