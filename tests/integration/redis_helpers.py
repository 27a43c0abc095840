from redis.asyncio import Redis


async def flush_prefix(redis: Redis, prefix: str) -> None:
    keys = await redis.keys(f"{prefix}*")
    if keys:
        await redis.delete(*keys)
