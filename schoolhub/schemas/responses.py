from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from schoolhub.domain.entities import School
from schoolhub.domain.gate import GateSnapshot


class RejectionOut(BaseModel):
    reason: str
    recoverable: bool
    message: str


class GateOut(BaseModel):
    gate_id: str = Field(..., description="The id of the gate")
    state: str
    recipient: Optional[str] = None
    expires_at: Optional[datetime] = None
    attempts_remaining: Optional[int] = None
    rejection: Optional[RejectionOut] = None
    gate_pass: Optional[str] = Field(
        None, description="Single-use pass, only returned by the unlocking submit"
    )

    @classmethod
    def from_snapshot(
        cls, gate_id: str, snap: GateSnapshot, gate_pass: Optional[str] = None
    ) -> "GateOut":
        rejection = None
        if snap.rejection is not None:
            rejection = RejectionOut(
                reason=snap.rejection.value,
                recoverable=bool(snap.recoverable),
                message=snap.message or snap.rejection.value,
            )
        return cls(
            gate_id=gate_id,
            state=snap.state.value,
            recipient=snap.recipient,
            expires_at=snap.expires_at,
            attempts_remaining=snap.attempts_remaining,
            rejection=rejection,
            gate_pass=gate_pass,
        )


class SchoolOut(BaseModel):
    id: int
    name: str
    address: str
    city: str
    state: str
    contact: int
    email_id: str
    image: Optional[str] = None

    @classmethod
    def from_entity(cls, school: School) -> "SchoolOut":
        return cls(
            id=school.id,
            name=school.name,
            address=school.address,
            city=school.city,
            state=school.state,
            contact=school.contact,
            email_id=school.email_id,
            image=school.image,
        )


class DirectoryOut(BaseModel):
    schools: list[SchoolOut]
    cities: list[str]
    states: list[str]
    total: int
