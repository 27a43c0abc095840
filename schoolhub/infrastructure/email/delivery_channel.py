from __future__ import annotations

import logging
import uuid

from schoolhub.domain.errors import DeliveryFailed
from schoolhub.domain.ports.delivery_channel import DeliveryChannelPort
from schoolhub.domain.ports.email_port import EmailPort
from schoolhub.infrastructure.email.http_smtp_adapter import EmailSendError

logger = logging.getLogger(__name__)

SUBJECT = "Your SchoolHub verification code"
BODY_TEMPLATE = (
    "Your verification code is {code}.\n"
    "It expires in {minutes} minute(s). "
    "If you did not ask to add a school, ignore this email."
)


class EmailDeliveryChannel(DeliveryChannelPort):
    def __init__(self, email: EmailPort, *, ttl_seconds: int = 300) -> None:
        self._email = email
        self._minutes = max(1, ttl_seconds // 60)

    async def send(self, recipient: str, code: str) -> None:
        body = BODY_TEMPLATE.format(code=code, minutes=self._minutes)
        try:
            await self._email.send(
                to=recipient,
                subject=SUBJECT,
                body=body,
                idempotency_key=str(uuid.uuid4()),
            )
        except EmailSendError as e:
            logger.warning(
                "verification email not delivered",
                extra={"recipient": recipient, "error": str(e)},
            )
            raise DeliveryFailed(recipient, "could not deliver the verification code") from e
        logger.info("verification email sent", extra={"recipient": recipient})
