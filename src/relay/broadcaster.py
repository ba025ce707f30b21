"""Fan-out of relay events to every connected participant."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Protocol

from relay.events import INCOMING_CALL, RECEIVE_MESSAGE, ChatMessage, RelayEnvelope
from relay.registry import Participant, SessionRegistry, Transport

LOGGER = logging.getLogger(__name__)

Audience = Callable[[Participant], bool]


class Delivery(Protocol):
    """Pushes one envelope to one participant. Returns True when handed off."""

    async def deliver(self, participant: Participant, transport: Transport, envelope: dict[str, Any]) -> bool: ...


class FireAndForgetDelivery:
    """Best-effort delivery: no acknowledgement, no retry.

    A send that does not complete within `send_timeout` seconds is dropped.
    """

    def __init__(self, send_timeout: float = 5.0) -> None:
        self._send_timeout = send_timeout

    async def deliver(self, participant: Participant, transport: Transport, envelope: dict[str, Any]) -> bool:
        try:
            await asyncio.wait_for(transport.send_json(envelope), timeout=self._send_timeout)
        except asyncio.TimeoutError:
            LOGGER.warning(
                "Dropping %s for %s (%s): send timed out after %ss",
                envelope.get("event"),
                participant.connection_id,
                participant.identity,
                self._send_timeout,
            )
            return False
        except Exception as exc:
            LOGGER.warning(
                "Dropping %s for %s (%s): %s",
                envelope.get("event"),
                participant.connection_id,
                participant.identity,
                exc,
            )
            return False
        return True


class RelayBroadcaster:
    def __init__(self, registry: SessionRegistry, delivery: Delivery | None = None) -> None:
        self._registry = registry
        self._delivery: Delivery = delivery or FireAndForgetDelivery()
        # One broadcast at a time so every participant sees the same order.
        self._order_lock = asyncio.Lock()

    async def broadcast(
        self,
        event: str,
        payload: dict[str, Any],
        *,
        audience: Audience | None = None,
    ) -> int:
        envelope = RelayEnvelope(event=event, data=payload).model_dump(mode="json")
        async with self._order_lock:
            targets = [
                (participant, transport)
                for participant, transport in await self._registry.snapshot()
                if audience is None or audience(participant)
            ]
            # Participants are sent to concurrently; a slow one costs at most one send timeout.
            results = await asyncio.gather(
                *[self._delivery.deliver(participant, transport, envelope) for participant, transport in targets]
            )
        delivered = sum(1 for ok in results if ok)
        LOGGER.debug("Broadcast %s reached %d participant(s)", event, delivered)
        return delivered

    async def broadcast_chat(self, message: ChatMessage) -> int:
        # Echoed to the sender as well so every client renders the same history.
        return await self.broadcast(RECEIVE_MESSAGE, message.to_payload())

    async def broadcast_incoming_call(
        self,
        call_sid: str,
        notice: str,
        *,
        audience: Audience | None = None,
    ) -> int:
        return await self.broadcast(
            INCOMING_CALL,
            {"message": notice, "call_sid": call_sid},
            audience=audience,
        )
