from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum

from core.errors import CallNotFoundError

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], float]


class CallPhase(str, Enum):
    ARRIVED = "arrived"
    WAITING = "waiting"
    CONNECTED = "connected"
    TIMED_OUT = "timed_out"
    SUPERSEDED = "superseded"


PENDING_PHASES = frozenset({CallPhase.ARRIVED, CallPhase.WAITING})


@dataclass
class CallSession:
    call_sid: str
    arrived_at: float
    accepted: bool = False
    phase: CallPhase = CallPhase.ARRIVED
    poll_count: int = 0

    @property
    def pending(self) -> bool:
        return self.phase in PENDING_PHASES and not self.accepted


class CallStateStore:
    """In-memory admission state, keyed by Twilio CallSid.

    Note: This is a single-process store. Only one call is "active" at a time;
    a new arrival supersedes whatever call was still pending.
    """

    def __init__(self, *, clock: Clock = time.monotonic, max_sessions: int = 100) -> None:
        self._lock = asyncio.Lock()
        self._sessions: OrderedDict[str, CallSession] = OrderedDict()
        self._active_sid: str | None = None
        self._max_sessions = max_sessions
        self.clock = clock

    async def reset(self, call_sid: str) -> CallSession:
        async with self._lock:
            previous = self._sessions.get(self._active_sid) if self._active_sid else None
            if previous is not None and previous.call_sid != call_sid and previous.pending:
                LOGGER.warning(
                    "Call %s arrived while %s was still pending; superseding it",
                    call_sid,
                    previous.call_sid,
                )
                previous.phase = CallPhase.SUPERSEDED

            session = CallSession(call_sid=call_sid, arrived_at=self.clock())
            self._sessions.pop(call_sid, None)
            self._sessions[call_sid] = session
            self._active_sid = call_sid
            self._evict()
            return replace(session)

    async def set_accepted(self, call_sid: str, accepted: bool) -> CallSession:
        async with self._lock:
            session = self._require(call_sid)
            session.accepted = accepted
            return replace(session)

    async def is_accepted(self, call_sid: str) -> bool:
        async with self._lock:
            session = self._sessions.get(call_sid)
            return bool(session and session.accepted)

    async def poll(self, call_sid: str, *, give_up: Callable[[CallSession], bool]) -> CallSession:
        """Count one wait poll and settle the call's phase in the same step.

        An accept recorded before this poll beats a timeout. TIMED_OUT is final;
        SUPERSEDED only moves on to CONNECTED if an operator accepts the call.
        """
        async with self._lock:
            session = self._require(call_sid)
            session.poll_count += 1
            if session.phase == CallPhase.TIMED_OUT:
                return replace(session)
            if session.accepted:
                if session.phase != CallPhase.CONNECTED:
                    LOGGER.info("Call %s accepted after %d polls", call_sid, session.poll_count)
                session.phase = CallPhase.CONNECTED
            elif session.phase == CallPhase.SUPERSEDED:
                LOGGER.info("Call %s was superseded; hanging up", call_sid)
            elif give_up(session):
                LOGGER.warning(
                    "Call %s was not accepted after %d polls; hanging up", call_sid, session.poll_count
                )
                session.phase = CallPhase.TIMED_OUT
            else:
                session.phase = CallPhase.WAITING
            return replace(session)

    async def get(self, call_sid: str) -> CallSession | None:
        async with self._lock:
            session = self._sessions.get(call_sid)
            return replace(session) if session else None

    async def active_call_sid(self) -> str | None:
        async with self._lock:
            return self._active_sid

    def _require(self, call_sid: str) -> CallSession:
        session = self._sessions.get(call_sid)
        if session is None:
            raise CallNotFoundError(f"Unknown call {call_sid}")
        return session

    def _evict(self) -> None:
        while len(self._sessions) > self._max_sessions:
            oldest = next(iter(self._sessions))
            if oldest == self._active_sid:
                break
            del self._sessions[oldest]
