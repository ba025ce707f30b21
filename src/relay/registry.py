from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

LOGGER = logging.getLogger(__name__)


class Transport(Protocol):
    """Anything that can push a JSON document to one connected client."""

    async def send_json(self, data: Any) -> None: ...


@dataclass(frozen=True)
class Participant:
    connection_id: str
    identity: str
    joined_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    role: str = "participant"


class SessionRegistry:
    """Connected relay clients, keyed by connection id.

    Readers get snapshots; the underlying dict is only touched under the lock.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._entries: dict[str, tuple[Participant, Transport]] = {}

    async def register(
        self,
        connection_id: str,
        identity: str,
        transport: Transport,
        *,
        role: str = "participant",
    ) -> Participant:
        async with self._lock:
            existing = self._entries.get(connection_id)
            if existing is not None:
                return existing[0]
            participant = Participant(connection_id=connection_id, identity=identity, role=role)
            self._entries[connection_id] = (participant, transport)
        LOGGER.info("Participant %s connected as %s", connection_id, identity)
        return participant

    async def unregister(self, connection_id: str) -> None:
        async with self._lock:
            entry = self._entries.pop(connection_id, None)
        if entry is not None:
            LOGGER.info("Participant %s (%s) disconnected", connection_id, entry[0].identity)

    async def list_active(self) -> frozenset[Participant]:
        async with self._lock:
            return frozenset(participant for participant, _ in self._entries.values())

    async def snapshot(self) -> tuple[tuple[Participant, Transport], ...]:
        async with self._lock:
            return tuple(self._entries.values())
