"""Pydantic schemas for relay traffic."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

CONNECTED = "connected"
RECEIVE_MESSAGE = "receive_message"
INCOMING_CALL = "incoming_call"
ERROR = "error"

SEND_MESSAGE = "send_message"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Attachment(BaseModel):
    """Reference to a file already persisted by the file store."""

    model_config = ConfigDict(frozen=True)

    url: str
    filename: str


class ChatMessage(BaseModel):
    """Chat message as relayed to every participant."""

    model_config = ConfigDict(frozen=True)

    sender: str
    text: str | None = None
    attachment: Attachment | None = None
    user_id: str | None = None
    timestamp: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def has_content(self) -> ChatMessage:
        if not (self.text and self.text.strip()) and self.attachment is None:
            raise ValueError("A chat message needs text or an attachment.")
        return self

    @property
    def kind(self) -> str:
        return "file" if self.attachment is not None else "text"

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "type": self.kind,
            "sender": self.sender,
            "user_id": self.user_id,
            "text": self.text or "",
            "timestamp": self.timestamp.isoformat(),
        }
        if self.attachment is not None:
            payload["url"] = self.attachment.url
            payload["filename"] = self.attachment.filename
        return payload


class RelayEnvelope(BaseModel):
    """Wire format in both directions: {"event": ..., "data": {...}}."""

    event: str
    data: dict[str, Any] = Field(default_factory=dict)
