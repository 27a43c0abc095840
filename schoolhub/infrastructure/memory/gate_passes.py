from __future__ import annotations

import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional

from schoolhub.domain.ports.gate_passes import GatePassesPort
from schoolhub.domain.services import utcnow


class InMemoryGatePasses(GatePassesPort):
    def __init__(
        self, *, ttl_seconds: int = 900, clock: Callable[[], datetime] = utcnow
    ) -> None:
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._passes: dict[str, tuple[str, datetime]] = {}

    def _purge(self, now: datetime) -> None:
        expired = [t for t, (_, expires_at) in self._passes.items() if now > expires_at]
        for token in expired:
            del self._passes[token]

    async def mint(self, recipient: str) -> str:
        now = self._clock()
        self._purge(now)
        token = secrets.token_urlsafe(32)
        self._passes[token] = (recipient, now + self._ttl)
        return token

    async def redeem(self, token: str) -> Optional[str]:
        entry = self._passes.pop(token, None)
        if entry is None:
            return None
        recipient, expires_at = entry
        if self._clock() > expires_at:
            return None
        return recipient

    def __len__(self) -> int:
        return len(self._passes)
