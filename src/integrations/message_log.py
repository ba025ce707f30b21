from __future__ import annotations

import threading
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class SentMessage:
    sid: str
    from_number: str
    to: str
    body: str
    sent_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class SentMessageLog:
    """Most recent outbound SMS, newest last. Lost on restart."""

    def __init__(self, max_entries: int = 100) -> None:
        self._lock = threading.Lock()
        self._entries: deque[SentMessage] = deque(maxlen=max_entries)

    def record(self, message: SentMessage) -> None:
        with self._lock:
            self._entries.append(message)

    def entries(self) -> list[dict[str, Any]]:
        with self._lock:
            return [asdict(entry) for entry in self._entries]
