import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

import schoolhub.domain.services as domain_services
from schoolhub.domain.entities import Unlocked, normalize_recipient
from schoolhub.domain.errors import (
    AlreadyConsumed,
    AttemptsExhausted,
    CodeExpired,
    CodeMismatch,
    VerificationNotFound,
    VerificationRejected,
    VerificationTimeout,
)
from schoolhub.domain.ports.verification_store import VerificationStorePort

logger = logging.getLogger(__name__)


async def verify_code(
    store: VerificationStorePort,
    recipient: str,
    code: str,
    timeout: Optional[float] = None,
    clock: Callable[[], datetime] = domain_services.utcnow,
) -> Unlocked:
    normalized_recipient = normalize_recipient(recipient)
    if timeout is None:
        return await _verify(store, normalized_recipient, code, clock)

    # shielded: a verification that already started always runs to completion
    task = asyncio.ensure_future(_verify(store, normalized_recipient, code, clock))
    try:
        return await asyncio.wait_for(asyncio.shield(task), timeout)
    except asyncio.TimeoutError:
        logger.warning(
            "verification timed out",
            extra={"recipient": normalized_recipient, "timeout_s": timeout},
        )
        task.add_done_callback(_log_late_outcome)
        raise VerificationTimeout(normalized_recipient, "verification timed out")


def _log_late_outcome(task: "asyncio.Future[Unlocked]") -> None:
    """Collect the result of a verification its caller stopped waiting for."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is None:
        logger.info(
            "late verification finished",
            extra={"recipient": task.result().recipient, "outcome": "unlocked"},
        )
    elif isinstance(exc, VerificationRejected):
        logger.info(
            "late verification finished",
            extra={"recipient": exc.recipient, "outcome": exc.reason.value},
        )
    else:
        logger.error("late verification failed", exc_info=exc)


async def _verify(
    store: VerificationStorePort,
    recipient: str,
    code: str,
    clock: Callable[[], datetime],
) -> Unlocked:
    async with store.lock(recipient):
        request = await store.get(recipient)
        now = clock()

        if request is None:
            raise VerificationNotFound(recipient)
        if request.consumed:
            raise AlreadyConsumed(recipient)
        if request.is_expired(now):
            await store.delete(recipient)
            raise CodeExpired(recipient)
        if request.attempts_remaining == 0:
            raise AttemptsExhausted(recipient)

        if not domain_services.verify_code_digest(
            code, request.code_salt, request.code_digest
        ):
            remaining = request.register_failure()
            await store.put(request)
            logger.info(
                "verification code mismatch",
                extra={"recipient": recipient, "attempts_remaining": remaining},
            )
            if remaining == 0:
                raise AttemptsExhausted(recipient)
            raise CodeMismatch(recipient, remaining)

        request.consume()
        await store.put(request)

    logger.info("verification code accepted", extra={"recipient": recipient})
    return Unlocked(recipient=recipient, verified_at=now)
