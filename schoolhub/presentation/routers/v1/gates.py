from functools import partial
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from schoolhub.application.issue_code import OtpPolicy, request_code
from schoolhub.application.verify_code import verify_code
from schoolhub.domain.entities import Unlocked
from schoolhub.domain.errors import GateStateError
from schoolhub.domain.gate import GateController
from schoolhub.domain.ports.delivery_channel import DeliveryChannelPort
from schoolhub.domain.ports.gate_passes import GatePassesPort
from schoolhub.domain.ports.verification_store import VerificationStorePort
from schoolhub.presentation.dependencies import (
    get_app_settings,
    get_delivery_channel,
    get_gate_passes,
    get_gate_registry,
    get_otp_policy,
    get_verification_store,
)
from schoolhub.presentation.gate_registry import GateNotFound, GateRegistry
from schoolhub.schemas.requests import GateRequestIn, GateSubmitIn
from schoolhub.schemas.responses import GateOut
from schoolhub.settings import Settings

router = APIRouter(prefix="/gates", tags=["Gates"])


def _lookup(registry: GateRegistry, gate_id: str) -> GateController:
    try:
        return registry.get(gate_id)
    except GateNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="unknown gate")


def _conflict(e: GateStateError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.post("", status_code=201, response_model=GateOut)
async def post_create_gate(
    registry: Annotated[GateRegistry, Depends(get_gate_registry)],
    store: Annotated[VerificationStorePort, Depends(get_verification_store)],
    channel: Annotated[DeliveryChannelPort, Depends(get_delivery_channel)],
    gate_passes: Annotated[GatePassesPort, Depends(get_gate_passes)],
    policy: Annotated[OtpPolicy, Depends(get_otp_policy)],
    settings: Annotated[Settings, Depends(get_app_settings)],
):
    async def mint_pass(unlocked: Unlocked) -> str:
        return await gate_passes.mint(unlocked.recipient)

    gate = GateController(
        request_code=partial(
            request_code,
            store,
            channel,
            policy=policy,
            timeout=settings.otp_issue_timeout_seconds,
        ),
        verify_code=partial(
            verify_code, store, timeout=settings.otp_verify_timeout_seconds
        ),
        on_unlocked=mint_pass,
    )
    gate_id = registry.add(gate)
    return GateOut.from_snapshot(gate_id, gate.snapshot())


@router.get("/{gate_id}", response_model=GateOut)
async def get_gate(
    gate_id: str,
    registry: Annotated[GateRegistry, Depends(get_gate_registry)],
):
    return GateOut.from_snapshot(gate_id, _lookup(registry, gate_id).snapshot())


@router.post("/{gate_id}/request", response_model=GateOut)
async def post_request_code(
    gate_id: str,
    body: GateRequestIn,
    registry: Annotated[GateRegistry, Depends(get_gate_registry)],
):
    gate = _lookup(registry, gate_id)
    try:
        snap = await gate.request(body.recipient)
    except GateStateError as e:
        raise _conflict(e)
    return GateOut.from_snapshot(gate_id, snap)


@router.post("/{gate_id}/resend", response_model=GateOut)
async def post_resend_code(
    gate_id: str,
    registry: Annotated[GateRegistry, Depends(get_gate_registry)],
):
    gate = _lookup(registry, gate_id)
    try:
        snap = await gate.resend()
    except GateStateError as e:
        raise _conflict(e)
    return GateOut.from_snapshot(gate_id, snap)


@router.post("/{gate_id}/submit", response_model=GateOut)
async def post_submit_code(
    gate_id: str,
    body: GateSubmitIn,
    registry: Annotated[GateRegistry, Depends(get_gate_registry)],
):
    gate = _lookup(registry, gate_id)
    try:
        snap = await gate.submit(body.code)
    except GateStateError as e:
        raise _conflict(e)
    return GateOut.from_snapshot(gate_id, snap, gate_pass=gate.take_result())
