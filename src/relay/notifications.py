from __future__ import annotations

import logging

from relay.broadcaster import Audience, RelayBroadcaster
from relay.registry import Participant

LOGGER = logging.getLogger(__name__)


def everyone(participant: Participant) -> bool:
    return True


def operators_only(participant: Participant) -> bool:
    return participant.role == "operator"


class NotificationBridge:
    """Tells relay participants that a call is waiting to be accepted.

    `audience` decides who hears about it; the default is every participant,
    chat users included.
    """

    def __init__(
        self,
        broadcaster: RelayBroadcaster,
        *,
        notice: str = "Incoming call! Please pick up.",
        audience: Audience = everyone,
    ) -> None:
        self._broadcaster = broadcaster
        self._notice = notice
        self._audience = audience

    async def notify_incoming_call(self, call_sid: str) -> None:
        reached = await self._broadcaster.broadcast_incoming_call(
            call_sid, self._notice, audience=self._audience
        )
        if reached == 0:
            LOGGER.warning("Nobody is connected to hear about incoming call %s", call_sid)
