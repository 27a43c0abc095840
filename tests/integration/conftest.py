import os

import pytest
import pytest_asyncio
from redis.asyncio import Redis

from schoolhub.infrastructure.db.migrate import cmd_up
from schoolhub.infrastructure.db.pool import close_pool, open_pool
from schoolhub.settings import get_settings


def pytest_collection_modifyitems(config, items):
    here = os.path.dirname(__file__)
    skip = pytest.mark.skip(reason="set INTEGRATION=1 to run against Redis/Postgres")
    for item in items:
        if str(item.path).startswith(here):
            item.add_marker(pytest.mark.integration)
            if os.environ.get("INTEGRATION") != "1":
                item.add_marker(skip)


@pytest_asyncio.fixture
async def redis_client():
    r = Redis.from_url(
        get_settings().redis_url, encoding="utf-8", decode_responses=True
    )
    try:
        yield r
    finally:
        await r.aclose()


@pytest.fixture(scope="session")
def migrated():
    assert cmd_up(get_settings().database_url) == 0


@pytest_asyncio.fixture
async def pool(migrated):
    p = await open_pool()
    try:
        async with p.connection() as conn:
            await conn.execute("TRUNCATE schools RESTART IDENTITY;")
        yield p
    finally:
        await close_pool()
