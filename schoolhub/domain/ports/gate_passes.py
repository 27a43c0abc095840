from __future__ import annotations

from typing import Optional, Protocol


class GatePassesPort(Protocol):
    async def mint(self, recipient: str) -> str:
        """Create a single-use pass for a verified recipient and return its token."""

    async def redeem(self, token: str) -> Optional[str]:
        """Return the recipient and delete the pass, or None if unknown/expired."""
