"""Admission protocol for inbound calls.

Twilio cannot hold a webhook open while an operator decides whether to take a
call, so the caller is parked in a poll loop instead:

    incoming-call  -> say "please wait" + redirect to wait-for-acceptance
    wait (pending) -> say "please hold" + pause + redirect to itself
    wait (accepted)-> say "connected" (terminal, no redirect)

Every poll re-reads the store, so an accept that lands between two polls is
seen by the very next one.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

from calls.instructions import (
    VoiceInstructionSet,
    say_and_hangup,
    say_and_redirect,
    say_only,
    say_pause_and_redirect,
)
from calls.state import CallPhase, CallSession, CallStateStore, Clock
from core.errors import CallRelayError, InvalidStatusError, NoPendingCallError

LOGGER = logging.getLogger(__name__)

ACCEPTED_STATUS = "accepted"


class IncomingCallNotifier(Protocol):
    async def notify_incoming_call(self, call_sid: str) -> None: ...


@dataclass(frozen=True)
class HoldPolicy:
    pause_seconds: int = 10
    max_polls: int | None = 90
    max_hold_seconds: float | None = None

    def exceeded(self, session: CallSession, now: float) -> bool:
        if self.max_polls is not None and session.poll_count > self.max_polls:
            return True
        if self.max_hold_seconds is not None and now - session.arrived_at >= self.max_hold_seconds:
            return True
        return False


@dataclass(frozen=True)
class CallScript:
    wait_message: str = "Please wait while we connect your call."
    hold_message: str = "Still waiting for the call to be accepted. Please hold."
    connected_message: str = "Hello! You have reached the test Twilio app."
    timeout_message: str = "Sorry, nobody is available to take your call. Please try again later."
    superseded_message: str = "Sorry, another call is being connected. Please call again."
    apology_message: str = "Sorry, something went wrong. Goodbye."
    language: str | None = None


@dataclass(frozen=True)
class AcceptResult:
    success: bool
    call_sid: str


class AdmissionCoordinator:
    def __init__(
        self,
        store: CallStateStore,
        notifier: IncomingCallNotifier,
        *,
        policy: HoldPolicy | None = None,
        script: CallScript | None = None,
        clock: Clock | None = None,
        notify_timeout: float = 2.0,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._policy = policy or HoldPolicy()
        self._script = script or CallScript()
        self._clock = clock or store.clock
        self._notify_timeout = notify_timeout
        self._notify_tasks: set[asyncio.Task[None]] = set()

    async def on_incoming_call(self, call_sid: str, wait_url: str) -> VoiceInstructionSet:
        LOGGER.info("Incoming call %s", call_sid)
        await self._store.reset(call_sid)

        # The notification keeps running in the background if it outlives the wait.
        task = asyncio.create_task(self._notify(call_sid))
        self._notify_tasks.add(task)
        task.add_done_callback(self._notify_tasks.discard)
        await asyncio.wait({task}, timeout=self._notify_timeout)
        if not task.done():
            LOGGER.warning(
                "Incoming call notification for %s still running after %ss; answering the caller",
                call_sid,
                self._notify_timeout,
            )

        return say_and_redirect(
            say_text=self._script.wait_message,
            redirect_url=wait_url,
            language=self._script.language,
        )

    async def on_wait_poll(self, call_sid: str, wait_url: str) -> VoiceInstructionSet:
        try:
            session = await self._store.poll(
                call_sid, give_up=lambda current: self._policy.exceeded(current, self._clock())
            )
        except CallRelayError as exc:
            LOGGER.warning("Wait poll for %s failed: %s", call_sid, exc.detail)
            return self.apology()

        if session.phase == CallPhase.CONNECTED:
            return say_only(say_text=self._script.connected_message, language=self._script.language)
        if session.phase == CallPhase.SUPERSEDED:
            return say_and_hangup(
                say_text=self._script.superseded_message, language=self._script.language
            )
        if session.phase == CallPhase.TIMED_OUT:
            return say_and_hangup(say_text=self._script.timeout_message, language=self._script.language)

        LOGGER.debug("Call %s still waiting (poll %d)", call_sid, session.poll_count)
        return say_pause_and_redirect(
            say_text=self._script.hold_message,
            pause_seconds=self._policy.pause_seconds,
            redirect_url=wait_url,
            language=self._script.language,
        )

    async def on_accept(self, status: str, call_sid: str | None = None) -> AcceptResult:
        if status != ACCEPTED_STATUS:
            raise InvalidStatusError(f"Call not accepted (status={status!r})")

        target = call_sid or await self._store.active_call_sid()
        if target is None:
            raise NoPendingCallError()

        await self._store.set_accepted(target, True)
        LOGGER.info("Call %s accepted by operator", target)
        return AcceptResult(success=True, call_sid=target)

    async def _notify(self, call_sid: str) -> None:
        try:
            await self._notifier.notify_incoming_call(call_sid)
        except Exception:
            # The caller leg must proceed even when nobody could be told.
            LOGGER.exception("Incoming call notification failed for %s", call_sid)

    def apology(self) -> VoiceInstructionSet:
        return say_and_hangup(say_text=self._script.apology_message, language=self._script.language)
