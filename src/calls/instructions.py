"""Voice instruction sets returned to Twilio as TwiML."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from twilio.twiml.voice_response import VoiceResponse


@dataclass(frozen=True)
class Say:
    text: str
    language: str | None = None


@dataclass(frozen=True)
class Pause:
    length: int


@dataclass(frozen=True)
class Redirect:
    url: str
    method: str = "POST"


@dataclass(frozen=True)
class Dial:
    number: str


@dataclass(frozen=True)
class Hangup:
    pass


Verb = Union[Say, Pause, Redirect, Dial, Hangup]


@dataclass(frozen=True)
class VoiceInstructionSet:
    """Ordered TwiML verbs for one webhook response.

    A set is terminal when it does not send the call back to us, i.e. it
    carries no <Redirect>.
    """

    verbs: tuple[Verb, ...]

    @property
    def terminal(self) -> bool:
        return not any(isinstance(verb, Redirect) for verb in self.verbs)

    @property
    def hangs_up(self) -> bool:
        return any(isinstance(verb, Hangup) for verb in self.verbs)

    def spoken_text(self) -> list[str]:
        return [verb.text for verb in self.verbs if isinstance(verb, Say)]

    def to_twiml(self) -> str:
        response = VoiceResponse()
        for verb in self.verbs:
            if isinstance(verb, Say):
                if verb.language:
                    response.say(verb.text, language=verb.language)
                else:
                    response.say(verb.text)
            elif isinstance(verb, Pause):
                response.pause(length=verb.length)
            elif isinstance(verb, Redirect):
                response.redirect(verb.url, method=verb.method)
            elif isinstance(verb, Dial):
                response.dial(verb.number)
            elif isinstance(verb, Hangup):
                response.hangup()
            else:  # pragma: no cover
                raise TypeError(f"Unsupported TwiML verb: {verb!r}")
        return str(response)


def say_and_redirect(*, say_text: str, redirect_url: str, language: str | None) -> VoiceInstructionSet:
    return VoiceInstructionSet((Say(say_text, language), Redirect(redirect_url)))


def say_pause_and_redirect(
    *, say_text: str, pause_seconds: int, redirect_url: str, language: str | None
) -> VoiceInstructionSet:
    return VoiceInstructionSet(
        (Say(say_text, language), Pause(max(1, int(pause_seconds))), Redirect(redirect_url))
    )


def say_only(*, say_text: str, language: str | None) -> VoiceInstructionSet:
    return VoiceInstructionSet((Say(say_text, language),))


def say_and_hangup(*, say_text: str, language: str | None) -> VoiceInstructionSet:
    return VoiceInstructionSet((Say(say_text, language), Hangup()))


def say_and_dial(*, say_text: str, number: str, language: str | None) -> VoiceInstructionSet:
    return VoiceInstructionSet((Say(say_text, language), Pause(1), Dial(number)))
