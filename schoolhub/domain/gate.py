"""
OTP gate state machine.

    idle -> requesting -> awaiting_code -> verifying -> unlocked
                 ^             |   ^           |
                 |   resend    |   | mismatch, |
                 |             |   | timeout   |
                 +-------------+   +-----------+

Terminal rejections (expired, attempts exhausted, not found, already
consumed) and request failures fall back to idle.

The controller does no I/O itself: it is handed the coroutines that issue
and verify codes, and the protected action to release once unlocked.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from schoolhub.domain.entities import IssuedCode, Unlocked, normalize_recipient
from schoolhub.domain.errors import (
    CodeMismatch,
    GateStateError,
    RejectionReason,
    VerificationRejected,
    VerificationTimeout,
)

logger = logging.getLogger(__name__)

RequestCodeFn = Callable[[str], Awaitable[IssuedCode]]
VerifyCodeFn = Callable[[str, str], Awaitable[Unlocked]]
ProtectedAction = Callable[[Unlocked], Awaitable[Any]]


class GateState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    AWAITING_CODE = "awaiting_code"
    VERIFYING = "verifying"
    UNLOCKED = "unlocked"


@dataclass(frozen=True)
class GateSnapshot:
    state: GateState
    recipient: Optional[str] = None
    expires_at: Optional[datetime] = None
    attempts_remaining: Optional[int] = None
    rejection: Optional[RejectionReason] = None
    recoverable: Optional[bool] = None
    message: Optional[str] = None


class GateController:
    def __init__(
        self,
        *,
        request_code: RequestCodeFn,
        verify_code: VerifyCodeFn,
        on_unlocked: Optional[ProtectedAction] = None,
    ) -> None:
        self._request_code = request_code
        self._verify_code = verify_code
        self._on_unlocked = on_unlocked

        self._state = GateState.IDLE
        self._recipient: Optional[str] = None
        self._expires_at: Optional[datetime] = None
        self._attempts_remaining: Optional[int] = None
        self._rejection: Optional[VerificationRejected] = None
        self._released = False
        self._result: Any = None
        self._result_taken = False

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def recipient(self) -> Optional[str]:
        return self._recipient

    @property
    def last_rejection(self) -> Optional[VerificationRejected]:
        return self._rejection

    def snapshot(self) -> GateSnapshot:
        rejection = self._rejection
        return GateSnapshot(
            state=self._state,
            recipient=self._recipient,
            expires_at=self._expires_at,
            attempts_remaining=self._attempts_remaining,
            rejection=rejection.reason if rejection else None,
            recoverable=rejection.recoverable if rejection else None,
            message=str(rejection) if rejection else None,
        )

    def take_result(self) -> Any:
        """Hand out the protected action's result once; None afterwards."""
        if self._state is not GateState.UNLOCKED or self._result_taken:
            return None
        self._result_taken = True
        return self._result

    def _expect(self, *allowed: GateState) -> None:
        if self._state not in allowed:
            raise GateStateError(
                f"cannot do that while {self._state.value}; "
                f"expected {', '.join(s.value for s in allowed)}"
            )

    async def request(self, recipient: str) -> GateSnapshot:
        self._expect(GateState.IDLE)
        self._recipient = normalize_recipient(recipient)
        return await self._issue()

    async def resend(self) -> GateSnapshot:
        self._expect(GateState.AWAITING_CODE)
        return await self._issue()

    async def _issue(self) -> GateSnapshot:
        self._state = GateState.REQUESTING
        self._rejection = None
        try:
            issued = await self._request_code(self._recipient)
        except VerificationRejected as e:
            logger.warning(
                "gate code request failed",
                extra={"recipient": self._recipient, "reason": e.reason.value},
            )
            self._rejection = e
            self._reset_request()
            return self.snapshot()
        except BaseException:
            self._reset_request()
            raise

        self._expires_at = issued.expires_at
        self._attempts_remaining = issued.request.attempts_remaining
        self._state = GateState.AWAITING_CODE
        return self.snapshot()

    async def submit(self, code: str) -> GateSnapshot:
        self._expect(GateState.AWAITING_CODE)
        self._state = GateState.VERIFYING
        self._rejection = None
        try:
            unlocked = await self._verify_code(self._recipient, code)
        except CodeMismatch as e:
            self._rejection = e
            self._attempts_remaining = e.attempts_remaining
            self._state = GateState.AWAITING_CODE
            return self.snapshot()
        except VerificationTimeout as e:
            # the request is still live; resubmit or resend from here
            logger.warning(
                "gate verification timed out", extra={"recipient": self._recipient}
            )
            self._rejection = e
            self._state = GateState.AWAITING_CODE
            return self.snapshot()
        except VerificationRejected as e:
            logger.info(
                "gate rejected",
                extra={"recipient": self._recipient, "reason": e.reason.value},
            )
            self._rejection = e
            self._reset_request()
            return self.snapshot()
        except BaseException:
            self._state = GateState.AWAITING_CODE
            raise

        self._state = GateState.UNLOCKED
        await self._release(unlocked)
        return self.snapshot()

    async def _release(self, unlocked: Unlocked) -> None:
        if self._released:
            return
        self._released = True
        logger.info("gate unlocked", extra={"recipient": unlocked.recipient})
        if self._on_unlocked is not None:
            self._result = await self._on_unlocked(unlocked)

    def _reset_request(self) -> None:
        self._state = GateState.IDLE
        self._expires_at = None
        self._attempts_remaining = None
