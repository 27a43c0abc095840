from __future__ import annotations

from typing import Protocol


class EmailPort(Protocol):
    """Outgoing mail transport behind EmailDeliveryChannel."""

    async def send(
        self,
        *,
        to: str,
        subject: str,
        body: str,
        idempotency_key: str | None = None,
    ) -> None:
        """
        Relay one message to `to`.
        Raises EmailSendError when the relay is unreachable or refuses it.
        """
