"""Core actor primitives for dexter."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable
from uuid import UUID

from .messages import Envelope, MessageKind, Ok

if TYPE_CHECKING:
    from .system import ActorSystem, _ActorCell


@dataclass(frozen=True, slots=True)
class ActorId:
    """Unique identifier for an actor."""

    uid: UUID
    name: str

    def __str__(self) -> str:
        return f"Actor({self.name})"

    def __hash__(self) -> int:
        return hash(self.uid)


class ActorRef[M]:
    """Opaque handle used to send messages to an actor.

    Callers never touch the actor instance or its state; everything goes
    through the mailbox behind this reference.
    """

    __slots__ = ("_id", "_cell", "_system")

    def __init__(self, actor_id: ActorId, cell: "_ActorCell", system: "ActorSystem") -> None:
        self._id = actor_id
        self._cell = cell
        self._system = system

    @property
    def id(self) -> ActorId:
        return self._id

    @property
    def name(self) -> str:
        return self._id.name

    @property
    def is_alive(self) -> bool:
        """Whether the actor still accepts messages."""
        return self._cell.accepting

    async def call(self, msg: M, *, timeout: float | None = None) -> Any:
        """Send a message and wait for the actor's reply.

        Args:
            msg: The request payload
            timeout: Seconds to wait for the reply, ``None`` to wait
                until the actor answers

        Returns:
            Whatever the actor's ``handle_call`` replied

        Raises:
            asyncio.TimeoutError: If ``timeout`` elapses first
            ActorStoppedError: If the actor is not running
            ActorCrashedError: If the actor crashed handling this call
        """
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        await self._system._deliver(self._cell, Envelope(MessageKind.CALL, msg, reply_to=future))
        if timeout is None:
            return await future
        return await asyncio.wait_for(future, timeout=timeout)

    async def cast(self, msg: M) -> None:
        """Send a message without waiting for anything (fire-and-forget)."""
        await self._system._deliver(self._cell, Envelope(MessageKind.CAST, msg))

    def __rshift__(self, msg: M) -> Awaitable[None]:
        """Operator >> for cast.

        Usage: await (actor >> msg)
        """
        return self.cast(msg)

    def __lshift__(self, msg: M) -> Awaitable[Any]:
        """Operator << for call.

        Usage: result = await (actor << msg)
        """
        return self.call(msg)

    def __repr__(self) -> str:
        return f"ActorRef({self._id})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ActorRef):
            return self._id == other._id
        return False

    def __hash__(self) -> int:
        return hash(self._id)


@dataclass(frozen=True)
class Context:
    """What an actor knows about its place in the system."""

    self_ref: ActorRef[Any]
    system: "ActorSystem"

    @property
    def name(self) -> str:
        return self.self_ref.name


class Actor[S]:
    """Base class for all actors.

    An actor owns a mailbox and a private state value of type ``S``. The
    system feeds it one message at a time and threads the state through
    the callbacks below; subclasses override whichever they need.

        class Echo(Actor[None]):
            async def handle_call(self, msg, state):
                return msg, state

    Every default is permissive: unknown calls get ``Ok(b"")`` and casts
    and infos are accepted and ignored.
    """

    _ctx: Context | None = None

    @property
    def ctx(self) -> Context:
        if self._ctx is None:
            raise RuntimeError("Actor context not set")
        return self._ctx

    async def init(self) -> S:
        """Build the initial state. Runs on spawn and again on every restart."""
        return None  # type: ignore[return-value]

    async def handle_call(self, msg: Any, state: S) -> tuple[Any, S]:
        """Handle a request; return ``(reply, new_state)``."""
        return Ok(), state

    async def handle_cast(self, msg: Any, state: S) -> S:
        """Handle a fire-and-forget message; return the new state."""
        return state

    async def handle_info(self, msg: Any, state: S) -> S:
        """Handle an out-of-band notification; return the new state."""
        return state

    async def terminate(self, reason: Any, state: S) -> None:
        """Cleanup hook called once before the actor goes away.

        ``reason`` is ``"normal"`` for ``stop()``, ``"shutdown"`` when the
        system shuts down, or the exception that crashed the actor.
        """
        pass
