"""API-facing Pydantic models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class AcceptCallRequest(BaseModel):
    status: str
    call_sid: str | None = Field(
        default=None, description="Call to accept; defaults to the call currently ringing."
    )


class AcceptCallResponse(BaseModel):
    success: bool
    call_sid: str


class CallSessionResponse(BaseModel):
    call_sid: str
    phase: str
    accepted: bool
    poll_count: int


class MakeCallRequest(BaseModel):
    to: str = Field(description="E.164 phone number to dial.")
    from_number: str | None = Field(default=None, description="Defaults to TWILIO_FROM_NUMBER.")


class MakeCallResponse(BaseModel):
    message: str = "Call initiated"
    call_sid: str


class SendSmsRequest(BaseModel):
    from_number: str | None = Field(default=None, description="Defaults to TWILIO_FROM_NUMBER.")
    to: str
    message: str = Field(min_length=1)


class SendSmsResponse(BaseModel):
    success: bool = True
    sid: str


class ReceivedMessageResponse(BaseModel):
    sid: str | None
    from_number: str | None
    body: str | None
    date_sent: str | None
    status: str | None


class SentMessageResponse(BaseModel):
    sid: str
    from_number: str
    to: str
    body: str
    sent_at: datetime


class TokenResponse(BaseModel):
    identity: str
    token: str


class UploadResponse(BaseModel):
    message: str = "Upload successful"
    file_path: str
    filename: str


class HealthResponse(BaseModel):
    status: str = "ok"
