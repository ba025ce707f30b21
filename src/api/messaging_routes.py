"""SMS send and lookup endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_gateway, get_message_log
from api.schemas import ReceivedMessageResponse, SendSmsRequest, SendSmsResponse, SentMessageResponse
from config.settings import get_settings
from core.errors import MissingParameterError
from integrations.message_log import SentMessage, SentMessageLog
from integrations.twilio_client import TelephonyGateway

router = APIRouter(prefix="/sms", tags=["sms"])


@router.post("", response_model=SendSmsResponse)
async def send_sms(
    payload: SendSmsRequest,
    gateway: TelephonyGateway = Depends(get_gateway),
    log: SentMessageLog = Depends(get_message_log),
) -> SendSmsResponse:
    from_number = payload.from_number or gateway.config.from_number
    if not from_number:
        raise MissingParameterError("A from number is required")

    sid = await gateway.send_sms(from_number=from_number, to=payload.to, body=payload.message)
    log.record(SentMessage(sid=sid, from_number=from_number, to=payload.to, body=payload.message))
    return SendSmsResponse(sid=sid)


@router.get("/received", response_model=list[ReceivedMessageResponse])
async def fetch_received_messages(
    phone_number: str | None = Query(default=None),
    gateway: TelephonyGateway = Depends(get_gateway),
) -> list[ReceivedMessageResponse]:
    if not phone_number:
        raise MissingParameterError("Phone number is required")

    messages = await gateway.list_received_messages(
        phone_number, page_size=get_settings().received_messages_page_size
    )
    return [ReceivedMessageResponse(**message) for message in messages]


@router.get("/sent", response_model=list[SentMessageResponse])
async def list_sent_messages(
    log: SentMessageLog = Depends(get_message_log),
) -> list[SentMessageResponse]:
    return [SentMessageResponse(**entry) for entry in log.entries()]
