from dataclasses import dataclass, field
from datetime import datetime


def normalize_recipient(recipient: str) -> str:
    normalized = (recipient or "").strip().lower()
    if not normalized:
        raise ValueError("recipient is required")
    return normalized


@dataclass
class VerificationRequest:
    recipient: str
    code_salt: str
    code_digest: str
    issued_at: datetime
    expires_at: datetime
    attempts_remaining: int
    consumed: bool = False

    def __post_init__(self):
        self.recipient = normalize_recipient(self.recipient)
        if self.attempts_remaining < 0:
            raise ValueError("attempts_remaining cannot be negative")
        if self.expires_at < self.issued_at:
            raise ValueError("expires_at must not precede issued_at")

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def is_active(self, now: datetime) -> bool:
        return (
            not self.consumed
            and not self.is_expired(now)
            and self.attempts_remaining > 0
        )

    def register_failure(self) -> int:
        if self.attempts_remaining > 0:
            self.attempts_remaining -= 1
        return self.attempts_remaining

    def consume(self):
        self.consumed = True


@dataclass(frozen=True)
class IssuedCode:
    """A freshly stored request plus the cleartext code for the delivery channel."""

    request: VerificationRequest
    code: str = field(repr=False)

    @property
    def recipient(self) -> str:
        return self.request.recipient

    @property
    def expires_at(self) -> datetime:
        return self.request.expires_at


@dataclass(frozen=True)
class Unlocked:
    recipient: str
    verified_at: datetime


@dataclass(frozen=True)
class School:
    id: int | None
    name: str
    address: str
    city: str
    state: str
    contact: int
    email_id: str
    image: str | None = None


@dataclass(frozen=True)
class ImageUpload:
    filename: str
    content: bytes = field(repr=False)
    content_type: str = "application/octet-stream"

    @property
    def extension(self) -> str:
        return self.filename.rsplit(".", 1)[-1].lower()
