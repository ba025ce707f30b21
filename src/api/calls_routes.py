"""Operator-facing call endpoints: admission, outbound calls and voice tokens."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_call_store, get_coordinator, get_gateway
from api.schemas import (
    AcceptCallRequest,
    AcceptCallResponse,
    CallSessionResponse,
    MakeCallRequest,
    MakeCallResponse,
    TokenResponse,
)
from api.twilio_routes import OUTBOUND_PATH
from calls.coordinator import AdmissionCoordinator
from calls.state import CallStateStore
from config.settings import get_settings
from core.errors import CallNotFoundError, ConfigurationError, MissingParameterError
from integrations.twilio_client import TelephonyGateway

LOGGER = logging.getLogger(__name__)

router = APIRouter(tags=["calls"])


@router.post("/calls/accept", response_model=AcceptCallResponse)
async def accept_call(
    payload: AcceptCallRequest,
    coordinator: AdmissionCoordinator = Depends(get_coordinator),
) -> AcceptCallResponse:
    result = await coordinator.on_accept(payload.status, payload.call_sid)
    return AcceptCallResponse(success=result.success, call_sid=result.call_sid)


@router.get("/calls/{call_sid}", response_model=CallSessionResponse)
async def get_call(
    call_sid: str,
    store: CallStateStore = Depends(get_call_store),
) -> CallSessionResponse:
    session = await store.get(call_sid)
    if session is None:
        raise CallNotFoundError(f"Unknown call {call_sid}")
    return CallSessionResponse(
        call_sid=session.call_sid,
        phase=session.phase.value,
        accepted=session.accepted,
        poll_count=session.poll_count,
    )


@router.post("/calls", response_model=MakeCallResponse)
async def make_call(
    payload: MakeCallRequest,
    gateway: TelephonyGateway = Depends(get_gateway),
) -> MakeCallResponse:
    cfg = gateway.config
    from_number = payload.from_number or cfg.from_number
    if not from_number:
        raise MissingParameterError("A from number is required")
    if not cfg.public_base_url:
        raise ConfigurationError("PUBLIC_BASE_URL is required for Twilio callbacks")

    call_sid = await gateway.create_call(
        to=payload.to,
        from_number=from_number,
        url=f"{cfg.public_base_url}{OUTBOUND_PATH}",
    )
    return MakeCallResponse(call_sid=call_sid)


@router.get("/token", response_model=TokenResponse)
async def voice_token(
    identity: str | None = Query(default=None),
    gateway: TelephonyGateway = Depends(get_gateway),
) -> TokenResponse:
    identity = identity or get_settings().voice_token_identity
    return TokenResponse(identity=identity, token=gateway.mint_voice_token(identity))
