from __future__ import annotations

import logging
from typing import Dict, Optional

import httpx

from schoolhub.domain.ports.email_port import EmailPort

logger = logging.getLogger(__name__)


class EmailSendError(RuntimeError):
    """The mail relay could not be reached or refused the message."""


class HttpSmtpEmailAdapter(EmailPort):
    """Posts messages as JSON to an HTTP mail relay (`POST {base_url}/send`)."""

    def __init__(
        self,
        base_url: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0,
        send_path: str = "/send",
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._send_path = send_path if send_path.startswith("/") else f"/{send_path}"
        self._owns_client: bool = client is None
        self._client: httpx.AsyncClient = client or httpx.AsyncClient(timeout=timeout)

    @property
    def send_url(self) -> str:
        return f"{self._base_url}{self._send_path}"

    async def send(
        self,
        *,
        to: str,
        subject: str,
        body: str,
        idempotency_key: str | None = None,
    ) -> None:
        headers: Dict[str, str] = {}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        payload = {"to": to, "subject": subject, "body": body}
        try:
            resp = await self._client.post(self.send_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise EmailSendError(f"mail relay HTTP error: {e}") from e

        if not resp.is_success:
            raise EmailSendError(
                f"mail relay responded {resp.status_code}: {resp.text[:200]}"
            )
        logger.debug("email relayed", extra={"to": to, "status": resp.status_code})

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
