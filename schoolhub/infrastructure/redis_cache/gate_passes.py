from __future__ import annotations

import secrets
from typing import Optional

from redis.asyncio import Redis

from schoolhub.domain.ports.gate_passes import GatePassesPort


class RedisGatePasses(GatePassesPort):
    def __init__(
        self, redis: Redis, *, key_prefix: str = "gatepass:", ttl_seconds: int = 900
    ) -> None:
        self._redis = redis
        self._prefix = key_prefix
        self._ttl = ttl_seconds

    def _key(self, token: str) -> str:
        return f"{self._prefix}{token}"

    async def mint(self, recipient: str) -> str:
        token = secrets.token_urlsafe(32)
        await self._redis.set(self._key(token), recipient, ex=self._ttl)
        return token

    async def redeem(self, token: str) -> Optional[str]:
        # GETDEL: read and burn in one round trip
        return await self._redis.getdel(self._key(token))
