from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx
from fastapi.concurrency import run_in_threadpool
from requests.exceptions import RequestException
from twilio.base.exceptions import TwilioException, TwilioRestException

from config.settings import get_settings
from core.errors import ConfigurationError, UpstreamProviderError

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class TwilioConfig:
    account_sid: str
    auth_token: str
    from_number: str | None = None
    public_base_url: str | None = None
    api_key_sid: str | None = None
    api_key_secret: str | None = None
    twiml_app_sid: str | None = None
    api_base_url: str = "https://api.twilio.com/2010-04-01"


def get_twilio_config() -> TwilioConfig:
    settings = get_settings()
    if not settings.twilio_account_sid or not settings.twilio_auth_token:
        raise ConfigurationError("Twilio credentials are not configured")

    return TwilioConfig(
        account_sid=settings.twilio_account_sid,
        auth_token=settings.twilio_auth_token,
        from_number=settings.twilio_from_number,
        public_base_url=settings.public_base_url.rstrip("/") if settings.public_base_url else None,
        api_key_sid=settings.twilio_api_key_sid,
        api_key_secret=settings.twilio_api_key_secret,
        twiml_app_sid=settings.twiml_app_sid,
        api_base_url=settings.twilio_api_base_url.rstrip("/"),
    )


def build_twilio_client(cfg: TwilioConfig | None = None):
    from twilio.rest import Client

    cfg = cfg or get_twilio_config()
    return Client(cfg.account_sid, cfg.auth_token)


def _provider_error(action: str, exc: Exception) -> UpstreamProviderError:
    details: dict[str, Any] = {"message": str(exc)}
    if isinstance(exc, TwilioRestException):
        details.update({"status": exc.status, "code": exc.code, "uri": exc.uri})
    return UpstreamProviderError(f"Twilio {action} failed: {exc}", details=details)


class TelephonyGateway:
    """Thin async facade over the Twilio SDK and REST API.

    The SDK client is synchronous, so its calls run in the threadpool.
    """

    def __init__(
        self,
        cfg: TwilioConfig,
        client: Any,
        *,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._cfg = cfg
        self._client = client
        self._http_transport = http_transport

    @property
    def config(self) -> TwilioConfig:
        return self._cfg

    async def send_sms(self, *, from_number: str, to: str, body: str) -> str:
        LOGGER.info("Sending SMS from %s to %s", from_number, to)
        try:
            message = await run_in_threadpool(
                self._client.messages.create, body=body, from_=from_number, to=to
            )
        except (TwilioException, RequestException) as exc:
            LOGGER.error("Twilio SMS send failed: %s", exc)
            raise _provider_error("message create", exc) from exc
        return str(message.sid)

    async def create_call(self, *, to: str, from_number: str, url: str) -> str:
        LOGGER.info("Placing outbound call from %s to %s", from_number, to)
        try:
            call = await run_in_threadpool(
                self._client.calls.create, to=to, from_=from_number, url=url, method="POST"
            )
        except (TwilioException, RequestException) as exc:
            LOGGER.error("Twilio call create failed: %s", exc)
            raise _provider_error("call create", exc) from exc
        return str(call.sid)

    async def list_received_messages(self, phone_number: str, *, page_size: int = 50) -> list[dict[str, Any]]:
        url = f"{self._cfg.api_base_url}/Accounts/{self._cfg.account_sid}/Messages.json"
        params = {"PageSize": page_size, "To": phone_number}

        try:
            async with httpx.AsyncClient(
                auth=(self._cfg.account_sid, self._cfg.auth_token),
                timeout=30,
                transport=self._http_transport,
            ) as client:
                response = await client.get(url, params=params)
            response.raise_for_status()
            messages = response.json().get("messages") or []
        except httpx.HTTPStatusError as exc:
            LOGGER.error("Fetching received messages failed: %s", exc.response.text)
            raise UpstreamProviderError(
                "Failed to fetch received messages",
                details={"status": exc.response.status_code, "body": exc.response.text},
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            LOGGER.error("Fetching received messages failed: %s", exc)
            raise UpstreamProviderError(
                "Failed to fetch received messages", details={"message": str(exc)}
            ) from exc

        return [
            {
                "sid": message.get("sid"),
                "from_number": message.get("from"),
                "body": message.get("body"),
                "date_sent": message.get("date_sent"),
                "status": message.get("status"),
            }
            for message in messages
            if message.get("direction") == "inbound"
        ]

    def mint_voice_token(self, identity: str) -> str:
        from twilio.jwt.access_token import AccessToken
        from twilio.jwt.access_token.grants import VoiceGrant

        cfg = self._cfg
        if not cfg.api_key_sid or not cfg.api_key_secret or not cfg.twiml_app_sid:
            raise ConfigurationError("Twilio API key or TwiML app is not configured")

        token = AccessToken(cfg.account_sid, cfg.api_key_sid, cfg.api_key_secret, identity=identity)
        token.add_grant(VoiceGrant(outgoing_application_sid=cfg.twiml_app_sid, incoming_allow=True))
        jwt = token.to_jwt()
        return jwt.decode("utf-8") if isinstance(jwt, bytes) else jwt
