from __future__ import annotations

import logging
from typing import Optional

from redis.asyncio import Redis

from schoolhub.settings import get_settings

logger = logging.getLogger(__name__)

_client: Optional[Redis] = None


def get_redis() -> Redis:
    """Lazy singleton client for REDIS_URL; str in, str out."""
    global _client
    if _client is None:
        _client = Redis.from_url(
            get_settings().redis_url,
            encoding="utf-8",
            decode_responses=True,
            health_check_interval=30,
        )
    return _client


async def open_redis() -> Redis:
    """Create the client and make sure the server answers before serving."""
    client = get_redis()
    await client.ping()
    logger.info("redis connected")
    return client


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
