from enum import Enum


class DomainError(Exception):
    """Base class for all domain-level errors."""

    pass


class RejectionReason(str, Enum):
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"
    MISMATCH = "mismatch"
    ALREADY_CONSUMED = "already_consumed"
    DELIVERY_FAILED = "delivery_failed"
    TIMEOUT = "timeout"


class VerificationRejected(DomainError):
    """
    A code could not be issued, delivered or verified.

    `recoverable` tells the caller whether the same request can still be
    satisfied (resubmit / retry) or whether a fresh code must be issued.
    """

    reason: RejectionReason
    recoverable: bool = True

    def __init__(self, recipient: str, message: str | None = None) -> None:
        super().__init__(message or self.reason.value)
        self.recipient = recipient


class VerificationNotFound(VerificationRejected):
    """No request exists for this recipient."""

    reason = RejectionReason.NOT_FOUND


class CodeExpired(VerificationRejected):
    """The request outlived its TTL."""

    reason = RejectionReason.EXPIRED
    recoverable = False


class AttemptsExhausted(VerificationRejected):
    """Every allowed attempt was spent on wrong codes."""

    reason = RejectionReason.ATTEMPTS_EXHAUSTED
    recoverable = False


class CodeMismatch(VerificationRejected):
    """Submitted code differs from the issued one."""

    reason = RejectionReason.MISMATCH

    def __init__(self, recipient: str, attempts_remaining: int) -> None:
        super().__init__(
            recipient, f"code mismatch, {attempts_remaining} attempt(s) left"
        )
        self.attempts_remaining = attempts_remaining


class AlreadyConsumed(VerificationRejected):
    """The request was already used to unlock a gate."""

    reason = RejectionReason.ALREADY_CONSUMED


class DeliveryFailed(VerificationRejected):
    """The delivery channel reported a failure."""

    reason = RejectionReason.DELIVERY_FAILED


class VerificationTimeout(VerificationRejected):
    """The operation did not finish within the caller's timeout."""

    reason = RejectionReason.TIMEOUT


class GateStateError(DomainError):
    """Operation not allowed in the gate's current state."""

    pass


class GatePassInvalid(DomainError):
    """Gate pass is unknown, expired or already used."""

    pass


class ImageUploadFailed(DomainError):
    """The object store refused or failed the upload."""

    pass
