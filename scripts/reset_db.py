# scripts/reset_db.py

import asyncio

from loguru import logger

from faturacao.core.db import engine
from faturacao.infrastructure.db import models  # noqa: F401
from faturacao.infrastructure.db.base import Base


async def reset_db():
    logger.info("Resetting schema (drop_all + create_all)...")

    async with engine.begin() as conn:
        logger.info("Dropping all tables...")
        await conn.run_sync(Base.metadata.drop_all)

        logger.info("Creating all tables from current models...")
        await conn.run_sync(Base.metadata.create_all)

    logger.success("DB reset complete: document_series and sequence_counters recreated.")


if __name__ == "__main__":
    asyncio.run(reset_db())
