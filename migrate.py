import asyncio

from daily.core.database.engine import engine
from daily.core.database.models import Base
from daily.utils import get_logger

log = get_logger(__name__)


def main():
    asyncio.run(init_db())


async def init_db():
    """Create any missing tables. Existing tables are left as they are."""
    log.info("Creating tables")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    log.info("Created tables")


if __name__ == "__main__":
    main()
