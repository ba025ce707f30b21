"""Application-wide configuration loading and validation."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    environment: Literal["local", "dev", "prod"] = Field(default="local")
    log_level: str = Field(default="INFO")

    cors_allowed_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        description="Origins allowed to reach the HTTP and realtime endpoints.",
    )

    # Twilio (Voice, Messaging)
    twilio_account_sid: str | None = Field(default=None)
    twilio_auth_token: str | None = Field(default=None)
    twilio_from_number: str | None = Field(default=None, description="E.164, e.g. +1415...")
    twilio_api_key_sid: str | None = Field(default=None)
    twilio_api_key_secret: str | None = Field(default=None)
    twiml_app_sid: str | None = Field(
        default=None,
        description="TwiML application used for outgoing calls placed from the browser client.",
    )
    twilio_api_base_url: str = Field(default="https://api.twilio.com/2010-04-01")
    public_base_url: str | None = Field(
        default=None,
        description="Public base URL for Twilio webhooks (e.g. https://<ngrok>.ngrok-free.app).",
    )
    twilio_say_language: str = Field(default="en-US")
    voice_token_identity: str = Field(default="user123")

    # Admission hold loop
    hold_pause_seconds: int = Field(
        default=10,
        ge=1,
        description="How long the caller is paused between two acceptance polls.",
    )
    hold_max_polls: int | None = Field(
        default=90,
        ge=1,
        description="Hang up after this many unanswered polls. None disables the limit.",
    )
    hold_max_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Hang up once the caller has waited this long. None disables the limit.",
    )
    call_session_history: int = Field(default=100, ge=1)

    wait_message: str = Field(default="Please wait while we connect your call.")
    hold_message: str = Field(default="Still waiting for the call to be accepted. Please hold.")
    connected_message: str = Field(default="Hello! You have reached the test Twilio app.")
    timeout_message: str = Field(
        default="Sorry, nobody is available to take your call. Please try again later."
    )
    superseded_message: str = Field(
        default="Sorry, another call is being connected. Please call again."
    )
    apology_message: str = Field(default="Sorry, something went wrong. Goodbye.")
    outbound_greeting: str = Field(default="Hello, you are now connected!")
    incoming_call_notice: str = Field(default="Incoming call! Please pick up.")
    incoming_call_audience: Literal["everyone", "operators"] = Field(
        default="everyone",
        description="Which relay participants are told about a waiting call.",
    )
    incoming_call_notify_timeout_seconds: float = Field(
        default=2.0,
        gt=0,
        description="How long the incoming-call webhook waits on the relay before answering Twilio.",
    )

    # Relay
    relay_send_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="A relay participant that takes longer than this to accept one event misses it.",
    )

    # Messaging
    sent_message_log_size: int = Field(default=100, ge=1)
    received_messages_page_size: int = Field(default=50, ge=1, le=1000)

    # Attachments
    uploads_dir: Path = Field(default=Path("./uploads"))
    uploads_url_prefix: str = Field(default="/uploads")
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, ge=1)

    @field_validator("uploads_dir")
    @classmethod
    def ensure_uploads_dir(cls, value: Path) -> Path:
        value.mkdir(parents=True, exist_ok=True)
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
