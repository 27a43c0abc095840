from __future__ import annotations

from typing import Protocol


class DeliveryChannelPort(Protocol):
    async def send(self, recipient: str, code: str) -> None:
        """Transmit the code out-of-band. Raises DeliveryFailed on failure."""
