import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

import schoolhub.domain.services as domain_services
from schoolhub.domain.entities import (
    IssuedCode,
    VerificationRequest,
    normalize_recipient,
)
from schoolhub.domain.errors import VerificationTimeout
from schoolhub.domain.ports.delivery_channel import DeliveryChannelPort
from schoolhub.domain.ports.verification_store import VerificationStorePort

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OtpPolicy:
    code_length: int = 6
    ttl_seconds: int = 300
    max_attempts: int = 5


async def issue_code(
    store: VerificationStorePort,
    recipient: str,
    policy: OtpPolicy = OtpPolicy(),
    clock: Callable[[], datetime] = domain_services.utcnow,
) -> IssuedCode:
    normalized_recipient = normalize_recipient(recipient)
    generated_code = domain_services.generate_numeric_code(policy.code_length)
    salt_b64, digest_b64 = domain_services.make_code_digest(generated_code)

    async with store.lock(normalized_recipient):
        now = clock()
        request = VerificationRequest(
            recipient=normalized_recipient,
            code_salt=salt_b64,
            code_digest=digest_b64,
            issued_at=now,
            expires_at=now + timedelta(seconds=policy.ttl_seconds),
            attempts_remaining=policy.max_attempts,
        )
        # replaces whatever was there: only one live request per recipient
        await store.put(request)

    logger.info(
        "verification code issued",
        extra={
            "recipient": normalized_recipient,
            "expires_at": request.expires_at.isoformat(),
        },
    )
    return IssuedCode(request=request, code=generated_code)


async def request_code(
    store: VerificationStorePort,
    channel: DeliveryChannelPort,
    recipient: str,
    policy: OtpPolicy = OtpPolicy(),
    timeout: Optional[float] = None,
    clock: Callable[[], datetime] = domain_services.utcnow,
) -> IssuedCode:
    """
    Issue a code and hand it to the delivery channel.

    If delivery outlives `timeout` it is abandoned and VerificationTimeout is
    raised; the stored request stays valid until its own expiry.
    """
    issued = await issue_code(store, recipient, policy, clock)
    try:
        await asyncio.wait_for(channel.send(issued.recipient, issued.code), timeout)
    except asyncio.TimeoutError:
        logger.warning(
            "verification code delivery timed out",
            extra={"recipient": issued.recipient, "timeout_s": timeout},
        )
        raise VerificationTimeout(issued.recipient, "code delivery timed out")
    return issued
