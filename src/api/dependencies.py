"""Shared FastAPI dependencies.

Separated to avoid circular imports between route modules. Process-wide
singletons are cached; `reset_state()` drops them (used by tests).
"""

from __future__ import annotations

from functools import lru_cache

from calls.coordinator import AdmissionCoordinator, CallScript, HoldPolicy
from calls.state import CallStateStore
from config.settings import get_settings
from integrations.file_store import StaticFileStore
from integrations.message_log import SentMessageLog
from integrations.twilio_client import TelephonyGateway, build_twilio_client, get_twilio_config
from relay.broadcaster import FireAndForgetDelivery, RelayBroadcaster
from relay.notifications import NotificationBridge, everyone, operators_only
from relay.registry import SessionRegistry


@lru_cache(maxsize=1)
def get_call_store() -> CallStateStore:
    return CallStateStore(max_sessions=get_settings().call_session_history)


@lru_cache(maxsize=1)
def get_registry() -> SessionRegistry:
    return SessionRegistry()


@lru_cache(maxsize=1)
def get_broadcaster() -> RelayBroadcaster:
    return RelayBroadcaster(
        get_registry(),
        FireAndForgetDelivery(send_timeout=get_settings().relay_send_timeout_seconds),
    )


@lru_cache(maxsize=1)
def get_notification_bridge() -> NotificationBridge:
    settings = get_settings()
    audience = operators_only if settings.incoming_call_audience == "operators" else everyone
    return NotificationBridge(
        get_broadcaster(),
        notice=settings.incoming_call_notice,
        audience=audience,
    )


@lru_cache(maxsize=1)
def get_coordinator() -> AdmissionCoordinator:
    settings = get_settings()
    return AdmissionCoordinator(
        get_call_store(),
        get_notification_bridge(),
        policy=HoldPolicy(
            pause_seconds=settings.hold_pause_seconds,
            max_polls=settings.hold_max_polls,
            max_hold_seconds=settings.hold_max_seconds,
        ),
        script=CallScript(
            wait_message=settings.wait_message,
            hold_message=settings.hold_message,
            connected_message=settings.connected_message,
            timeout_message=settings.timeout_message,
            superseded_message=settings.superseded_message,
            apology_message=settings.apology_message,
            language=settings.twilio_say_language,
        ),
        notify_timeout=settings.incoming_call_notify_timeout_seconds,
    )


@lru_cache(maxsize=1)
def get_file_store() -> StaticFileStore:
    settings = get_settings()
    return StaticFileStore(
        settings.uploads_dir,
        url_prefix=settings.uploads_url_prefix,
        max_bytes=settings.max_upload_bytes,
    )


@lru_cache(maxsize=1)
def get_message_log() -> SentMessageLog:
    return SentMessageLog(get_settings().sent_message_log_size)


def get_gateway() -> TelephonyGateway:
    cfg = get_twilio_config()
    return TelephonyGateway(cfg, build_twilio_client(cfg))


def reset_state() -> None:
    for factory in (
        get_call_store,
        get_registry,
        get_broadcaster,
        get_notification_bridge,
        get_coordinator,
        get_file_store,
        get_message_log,
    ):
        factory.cache_clear()
