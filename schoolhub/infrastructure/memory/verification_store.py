from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import AsyncIterator, Callable, Optional

from schoolhub.domain.entities import VerificationRequest, normalize_recipient
from schoolhub.domain.ports.verification_store import VerificationStorePort
from schoolhub.domain.services import utcnow


@dataclass
class _KeyLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class InMemoryVerificationStore(VerificationStorePort):
    """
    Process-local store, one asyncio.Lock per recipient.

    Records are kept `retention_seconds` past their expiry so that late
    submissions still read as expired/consumed instead of not found.
    """

    def __init__(
        self,
        *,
        retention_seconds: int = 600,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._records: dict[str, VerificationRequest] = {}
        self._locks: dict[str, _KeyLock] = {}
        self._retention = timedelta(seconds=retention_seconds)
        self._clock = clock

    @asynccontextmanager
    async def lock(self, recipient: str) -> AsyncIterator[None]:
        key = normalize_recipient(recipient)
        entry = self._locks.setdefault(key, _KeyLock())
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                self._locks.pop(key, None)

    async def get(self, recipient: str) -> Optional[VerificationRequest]:
        key = normalize_recipient(recipient)
        record = self._records.get(key)
        if record is None:
            return None
        if record.expires_at + self._retention < self._clock():
            del self._records[key]
            return None
        # callers mutate what they get; hand out a copy
        return replace(record)

    def _purge(self, now: datetime) -> None:
        stale = [
            key
            for key, record in self._records.items()
            if record.expires_at + self._retention < now
        ]
        for key in stale:
            del self._records[key]

    async def put(self, request: VerificationRequest) -> None:
        self._purge(self._clock())
        self._records[request.recipient] = replace(request)

    async def delete(self, recipient: str) -> None:
        self._records.pop(normalize_recipient(recipient), None)

    def __len__(self) -> int:
        return len(self._records)
