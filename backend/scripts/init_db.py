"""
Create the database tables (development setups without Alembic)
"""
import asyncio
import logging

from app.database import engine, Base
from app.models import Verification, VerificationPhoto, VerificationTransition  # noqa: F401 - register tables

logger = logging.getLogger(__name__)


async def init_database(drop: bool = False):
    async with engine.begin() as conn:
        if drop:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Tables created: %s", ", ".join(sorted(Base.metadata.tables)))


async def main():
    logging.basicConfig(level=logging.INFO)
    await init_database()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
