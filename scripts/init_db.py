# scripts/init_db.py
from __future__ import annotations

import argparse
import asyncio
import logging

from cortex.config import settings
from cortex.db import async_session, engine
from cortex.logging_config import configure_logging
from cortex.models import Base
from cortex.services.demo_seed import seed_dimensions

log = logging.getLogger("init_db")


async def main() -> None:
    parser = argparse.ArgumentParser(description="Create Cortex tables (safe to re-run)")
    parser.add_argument("--with-dimensions", action="store_true", help="Also upsert sources, campaigns and landing pages")
    args = parser.parse_args()

    configure_logging(settings.LOG_LEVEL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.info("tables ready: %s", ", ".join(sorted(Base.metadata.tables)))

    if args.with_dimensions:
        async with async_session() as session:
            created = await seed_dimensions(session)
            await session.commit()
        log.info("dimensions seeded: %s", created)

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
