"""Message envelopes and reply values."""

from __future__ import annotations

from asyncio import Future
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any


class MessageKind(Enum):
    """How a message was delivered to an actor."""

    CALL = auto()  # request/response, sender waits for a reply
    CAST = auto()  # fire-and-forget
    INFO = auto()  # out-of-band notification, timers


@dataclass(slots=True)
class Envelope[M]:
    """Internal wrapper for a queued message.

    Only ``CALL`` envelopes carry a reply channel.
    """

    kind: MessageKind
    payload: M
    reply_to: Future[Any] | None = None

    def reply(self, value: Any) -> None:
        if self.reply_to is not None and not self.reply_to.done():
            self.reply_to.set_result(value)

    def fail(self, exc: BaseException) -> None:
        if self.reply_to is not None and not self.reply_to.done():
            self.reply_to.set_exception(exc)


@dataclass(frozen=True, slots=True)
class Lookup:
    """Look up a pokemon by name or numeric id."""

    key: str | int


@dataclass(frozen=True, slots=True)
class Ok:
    """Successful reply carrying the raw response body."""

    body: bytes = b""

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Err:
    """Failed reply carrying a human-readable reason."""

    reason: str

    @property
    def ok(self) -> bool:
        return False


type Response = Ok | Err
