"""Twilio Voice webhooks.

This module provides:
- The inbound admission loop (incoming-call -> wait-for-acceptance, repeated).
- TwiML for outbound calls placed through the calls API.

Twilio must always get TwiML back; failures are answered with an apology and a hangup.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response

from api.dependencies import get_coordinator
from calls.coordinator import AdmissionCoordinator
from calls.instructions import VoiceInstructionSet, say_and_dial
from config.settings import get_settings

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/twilio", tags=["twilio"])

WAIT_PATH = "/api/twilio/wait-for-acceptance"
OUTBOUND_PATH = "/api/twilio/outbound"


def _twiml_response(instructions: VoiceInstructionSet) -> Response:
    # Twilio expects application/xml
    return Response(content=instructions.to_twiml(), media_type="application/xml")


def _wait_url(request: Request) -> str:
    settings = get_settings()
    if settings.public_base_url:
        return f"{settings.public_base_url.rstrip('/')}{WAIT_PATH}"
    return str(request.url_for("twilio_wait_for_acceptance"))


async def _form_value(request: Request, name: str) -> str:
    form = await request.form()
    return str(form.get(name) or "").strip()


@router.post("/incoming-call")
async def twilio_incoming_call(
    request: Request,
    coordinator: AdmissionCoordinator = Depends(get_coordinator),
) -> Response:
    call_sid = await _form_value(request, "CallSid") or "unknown"
    try:
        instructions = await coordinator.on_incoming_call(call_sid, _wait_url(request))
    except Exception:
        LOGGER.exception("Incoming call handling failed for %s", call_sid)
        instructions = coordinator.apology()
    return _twiml_response(instructions)


@router.post("/wait-for-acceptance")
async def twilio_wait_for_acceptance(
    request: Request,
    coordinator: AdmissionCoordinator = Depends(get_coordinator),
) -> Response:
    call_sid = await _form_value(request, "CallSid") or "unknown"
    try:
        instructions = await coordinator.on_wait_poll(call_sid, _wait_url(request))
    except Exception:
        LOGGER.exception("Wait poll handling failed for %s", call_sid)
        instructions = coordinator.apology()
    return _twiml_response(instructions)


@router.post("/outbound")
async def twilio_outbound(
    request: Request,
    coordinator: AdmissionCoordinator = Depends(get_coordinator),
) -> Response:
    """TwiML for calls created through POST /api/calls: greet, then dial the target."""

    settings = get_settings()
    to = await _form_value(request, "To")
    if not to:
        LOGGER.warning("Outbound TwiML requested without a To number")
        return _twiml_response(coordinator.apology())

    return _twiml_response(
        say_and_dial(
            say_text=settings.outbound_greeting,
            number=to,
            language=settings.twilio_say_language,
        )
    )
