from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import AsyncIterator, Optional

from redis.asyncio import Redis
from redis.exceptions import LockError

from schoolhub.domain.entities import VerificationRequest, normalize_recipient
from schoolhub.domain.errors import VerificationTimeout
from schoolhub.domain.ports.verification_store import VerificationStorePort


def _to_hash(request: VerificationRequest) -> dict[str, str]:
    return {
        "recipient": request.recipient,
        "salt": request.code_salt,
        "digest": request.code_digest,
        "issued_at": request.issued_at.isoformat(),
        "expires_at": request.expires_at.isoformat(),
        "attempts_remaining": str(request.attempts_remaining),
        "consumed": "1" if request.consumed else "0",
    }


def _from_hash(stored: dict[str, str]) -> VerificationRequest:
    return VerificationRequest(
        recipient=stored["recipient"],
        code_salt=stored["salt"],
        code_digest=stored["digest"],
        issued_at=datetime.fromisoformat(stored["issued_at"]),
        expires_at=datetime.fromisoformat(stored["expires_at"]),
        attempts_remaining=int(stored["attempts_remaining"]),
        consumed=stored.get("consumed") == "1",
    )


class RedisVerificationStore(VerificationStorePort):
    """
    One hash per recipient under `<prefix><recipient>`.

    Keys outlive `expires_at` by `retention_seconds`; the TTL is only garbage
    collection, expiry itself is decided by the verifier against expires_at.
    Per-recipient serialization uses a Redis lock so it holds across workers.
    """

    def __init__(
        self,
        redis: Redis,
        *,
        key_prefix: str = "otp:",
        retention_seconds: int = 600,
        lock_timeout: float = 5.0,
        lock_wait: float = 5.0,
    ) -> None:
        self._redis = redis
        self._prefix = key_prefix
        self._retention = timedelta(seconds=retention_seconds)
        self._lock_timeout = lock_timeout
        self._lock_wait = lock_wait

    def _key(self, recipient: str) -> str:
        return f"{self._prefix}{normalize_recipient(recipient)}"

    @asynccontextmanager
    async def lock(self, recipient: str) -> AsyncIterator[None]:
        lock = self._redis.lock(
            f"{self._key(recipient)}:lock",
            timeout=self._lock_timeout,
            blocking_timeout=self._lock_wait,
        )
        if not await lock.acquire():
            raise VerificationTimeout(
                normalize_recipient(recipient), "verification store busy"
            )
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError:
                # lock already expired by its own timeout
                pass

    async def get(self, recipient: str) -> Optional[VerificationRequest]:
        stored = await self._redis.hgetall(self._key(recipient))
        if not stored or "digest" not in stored:
            return None
        return _from_hash(stored)

    async def put(self, request: VerificationRequest) -> None:
        key = self._key(request.recipient)
        pipe = self._redis.pipeline(transaction=True)
        pipe.delete(key)
        pipe.hset(key, mapping=_to_hash(request))
        pipe.expireat(key, request.expires_at + self._retention)
        await pipe.execute()

    async def delete(self, recipient: str) -> None:
        await self._redis.delete(self._key(recipient))
