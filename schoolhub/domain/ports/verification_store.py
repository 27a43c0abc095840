from __future__ import annotations

from typing import AsyncContextManager, Optional, Protocol

from schoolhub.domain.entities import VerificationRequest


class VerificationStorePort(Protocol):
    def lock(self, recipient: str) -> AsyncContextManager[None]:
        """
        Serialize issue/verify for one recipient.
        Different recipients never block each other.
        """

    async def get(self, recipient: str) -> Optional[VerificationRequest]:
        """Return the current request for the recipient, or None."""

    async def put(self, request: VerificationRequest) -> None:
        """Store/replace the request for request.recipient."""

    async def delete(self, recipient: str) -> None:
        """Drop any request for the recipient."""
