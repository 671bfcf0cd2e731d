"""Actor system runtime: spawning, supervision, and message routing."""

from __future__ import annotations

import asyncio
import logging
from asyncio import Task, TimerHandle
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

from .actor import Actor, ActorId, ActorRef, Context
from .config import DexterConfig, MailboxConfig
from .errors import (
    ActorCrashedError,
    ActorStoppedError,
    MailboxFullError,
    NameNotFoundError,
    NameTakenError,
)
from .mailbox import Mailbox, MailboxOverflowStrategy
from .messages import Envelope, MessageKind
from .registry import Registry
from .supervision import RestartRecord, SupervisionStrategy, SupervisorConfig

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class _Stop:
    """Sentinel payload that ends an actor's run loop."""

    reason: Any


@dataclass(eq=False)
class _ActorCell:
    """Everything the system tracks for one running actor."""

    actor_id: ActorId
    actor_cls: type[Actor[Any]]
    kwargs: dict[str, Any]
    supervision: SupervisorConfig
    registered_name: str | None
    actor: Actor[Any] | None = None
    mailbox: Mailbox[Envelope[Any]] | None = None
    ref: ActorRef[Any] | None = None
    state: Any = None
    task: Task[None] | None = None
    accepting: bool = True
    terminated: bool = False
    restart_record: RestartRecord = field(default_factory=RestartRecord)


type Target = ActorRef[Any] | str


class ActorSystem:
    """Supervisor that owns actors, their mailboxes, and the name registry.

    Each actor gets one task that drains its mailbox strictly in arrival
    order, so its state is only ever touched by one handler at a time.

    Usage:
        async with ActorSystem() as system:
            ref = await system.spawn(LookupActor, name="pokeapi", base_url=...)
            reply = await system.call("pokeapi", Lookup("pikachu"))
    """

    def __init__(self, config: DexterConfig | None = None) -> None:
        self._config = config or DexterConfig()
        self._cells: dict[ActorId, _ActorCell] = {}
        self._registry = Registry()
        self._timers: set[TimerHandle] = set()
        self._running = True

    @property
    def name(self) -> str:
        return self._config.system_name

    @property
    def config(self) -> DexterConfig:
        return self._config

    @property
    def registry(self) -> Registry:
        return self._registry

    @property
    def running(self) -> bool:
        return self._running

    def whereis(self, name: str) -> ActorRef[Any] | None:
        """Find a registered actor by name."""
        return self._registry.whereis(name)

    # Lifecycle

    async def spawn[S](
        self,
        actor_cls: type[Actor[S]],
        *,
        name: str | None = None,
        supervision: SupervisorConfig | None = None,
        mailbox: MailboxConfig | None = None,
        **kwargs: Any,
    ) -> ActorRef[Any]:
        """Create an actor, run its ``init()``, and start its run loop.

        Args:
            actor_cls: The actor class to instantiate
            name: Register the actor under this name so it can be found
                with ``whereis``; ``None`` leaves it anonymous
            supervision: Override the class or system supervision config
            mailbox: Override the system default mailbox settings
            **kwargs: Constructor arguments, reused on every restart

        Returns:
            Reference to the running actor

        Raises:
            NameTakenError: If ``name`` is held by a live actor
            RuntimeError: If the system has been shut down
            Exception: Whatever ``init()`` raised; nothing is registered
        """
        if not self._running:
            raise RuntimeError("ActorSystem is shut down")

        if name is not None:
            self._registry.validate_name(name)
            existing = self._registry.whereis(name)
            if existing is not None and existing.is_alive:
                raise NameTakenError(f"Name {name!r} is already registered to {existing}")

        if supervision is None:
            supervision = getattr(actor_cls, "supervision_config", None)
        if supervision is None:
            supervision = self._config.supervisor_config()

        actor_id = ActorId(
            uid=uuid4(),
            name=name or f"{actor_cls.__name__}-{uuid4().hex[:8]}",
        )
        cell = _ActorCell(
            actor_id=actor_id,
            actor_cls=actor_cls,
            kwargs=kwargs,
            supervision=supervision,
            registered_name=name,
        )
        mailbox_config = mailbox or self._config.mailbox
        cell.mailbox = Mailbox(
            capacity=mailbox_config.capacity,
            overflow=mailbox_config.overflow,
            on_drop=lambda envelope: self._dropped(cell, envelope),
        )
        cell.ref = ActorRef(actor_id, cell, self)

        actor = actor_cls(**kwargs)
        actor._ctx = Context(self_ref=cell.ref, system=self)
        cell.actor = actor
        cell.state = await actor.init()

        if name is not None:
            try:
                self._registry.register(name, cell.ref)
            except Exception:
                cell.accepting = False
                await self._terminate(cell, "already_started")
                raise

        self._cells[actor_id] = cell
        cell.task = asyncio.create_task(self._run(cell), name=f"{self.name}:{actor_id.name}")
        log.debug(f"Started {actor_id} in system {self.name!r}")
        return cell.ref

    async def stop(
        self,
        target: Target,
        reason: Any = "normal",
        *,
        timeout: float | None = None,
    ) -> bool:
        """Stop an actor gracefully.

        Messages already queued are handled first, then ``terminate`` runs
        and the name is released. Anything sent afterwards is a dead letter.

        Args:
            target: Reference or registered name of the actor
            reason: Passed to ``terminate``
            timeout: Cancel the actor if it has not finished in time

        Returns:
            True if the actor was running, False otherwise
        """
        ref = self._registry.whereis(target) if isinstance(target, str) else target
        if ref is None:
            return False
        cell = self._cells.get(ref.id)
        if cell is None or not cell.accepting:
            return False

        await self._request_stop(cell, reason)
        await self._await_exit(cell, timeout)
        return True

    async def shutdown(self, *, timeout: float | None = None) -> None:
        """Stop all actors and cancel pending timers.

        Safe to call more than once, and safe to call from within an actor.
        """
        self._running = False

        for timer in self._timers:
            timer.cancel()
        self._timers.clear()

        cells = list(self._cells.values())
        for cell in cells:
            if cell.accepting:
                await self._request_stop(cell, "shutdown")

        current = asyncio.current_task()
        others = [c for c in cells if c.task is not None and c.task is not current]
        await asyncio.gather(*(self._await_exit(c, timeout) for c in others))

    async def __aenter__(self) -> "ActorSystem":
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: object,
    ) -> None:
        await self.shutdown()

    # Messaging

    def _resolve(self, target: Target) -> ActorRef[Any]:
        if isinstance(target, ActorRef):
            return target
        ref = self._registry.whereis(target)
        if ref is None:
            raise NameNotFoundError(f"No actor registered as {target!r}")
        return ref

    async def call(self, target: Target, msg: Any, *, timeout: float | None = None) -> Any:
        """Call an actor by reference or registered name."""
        return await self._resolve(target).call(msg, timeout=timeout)

    async def cast(self, target: Target, msg: Any) -> None:
        """Cast to an actor by reference or registered name."""
        await self._resolve(target).cast(msg)

    def notify(self, target: Target, msg: Any) -> None:
        """Deliver ``msg`` as an info message, bypassing call/cast.

        Never blocks: a full ``backpressure`` mailbox turns the message
        into a dead letter instead.
        """
        ref = self._resolve(target)
        self._deliver_nowait(ref._cell, Envelope(MessageKind.INFO, msg))

    def send_after(self, target: Target, msg: Any, delay: float) -> TimerHandle:
        """Deliver ``msg`` as info after ``delay`` seconds.

        A name is resolved when the timer fires, not when it is set.
        Cancel the returned handle to call it off.
        """
        loop = asyncio.get_running_loop()
        handle: TimerHandle

        def fire() -> None:
            self._timers.discard(handle)
            try:
                ref = self._resolve(target)
            except NameNotFoundError:
                log.warning(f"Dead letter: timer message {type(msg).__name__} for unknown {target!r}")
                return
            self._deliver_nowait(ref._cell, Envelope(MessageKind.INFO, msg))

        handle = loop.call_later(delay, fire)
        self._timers = {t for t in self._timers if not t.cancelled()}
        self._timers.add(handle)
        return handle

    async def _deliver(self, cell: _ActorCell, envelope: Envelope[Any]) -> None:
        if not cell.accepting:
            self._dead_letter(cell, envelope)
            return

        assert cell.mailbox is not None
        if cell.mailbox.overflow is MailboxOverflowStrategy.backpressure:
            await cell.mailbox.put_async(envelope)
            if cell.task is not None and cell.task.done():
                # The actor exited while we waited for space.
                for orphan in cell.mailbox.drain():
                    self._dead_letter(cell, orphan)
        else:
            cell.mailbox.put(envelope)

    def _deliver_nowait(self, cell: _ActorCell, envelope: Envelope[Any]) -> None:
        if not cell.accepting:
            self._dead_letter(cell, envelope)
            return
        assert cell.mailbox is not None
        try:
            cell.mailbox.put(envelope)
        except asyncio.QueueFull:
            self._dropped(cell, envelope)

    def _dead_letter(self, cell: _ActorCell, envelope: Envelope[Any]) -> None:
        log.warning(
            f"Dead letter: {envelope.kind.name.lower()} {type(envelope.payload).__name__} "
            f"to stopped {cell.actor_id}"
        )
        envelope.fail(ActorStoppedError(f"{cell.actor_id} is not running"))

    def _dropped(self, cell: _ActorCell, envelope: Envelope[Any]) -> None:
        if isinstance(envelope.payload, _Stop):
            return
        log.warning(
            f"Dead letter: {envelope.kind.name.lower()} {type(envelope.payload).__name__} "
            f"dropped by full mailbox of {cell.actor_id}"
        )
        envelope.fail(MailboxFullError(f"Mailbox of {cell.actor_id} is full"))

    # Run loop and supervision

    async def _request_stop(self, cell: _ActorCell, reason: Any) -> None:
        cell.accepting = False
        assert cell.mailbox is not None
        # put_async ignores the overflow strategy, so the sentinel is never dropped.
        await cell.mailbox.put_async(Envelope(MessageKind.CAST, _Stop(reason)))

    async def _await_exit(self, cell: _ActorCell, timeout: float | None) -> None:
        task = cell.task
        if task is None or task is asyncio.current_task():
            return
        done, _ = await asyncio.wait({task}, timeout=timeout)
        if not done:
            log.warning(f"{cell.actor_id} did not stop within {timeout}s, cancelling")
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    async def _dispatch(self, cell: _ActorCell, envelope: Envelope[Any]) -> Any:
        actor = cell.actor
        assert actor is not None
        match envelope.kind:
            case MessageKind.CALL:
                reply, state = await actor.handle_call(envelope.payload, cell.state)
                envelope.reply(reply)
                return state
            case MessageKind.CAST:
                return await actor.handle_cast(envelope.payload, cell.state)
            case MessageKind.INFO:
                return await actor.handle_info(envelope.payload, cell.state)

    async def _run(self, cell: _ActorCell) -> None:
        """Actor run loop: one envelope at a time, in arrival order."""
        assert cell.mailbox is not None
        reason: Any = "normal"
        envelope: Envelope[Any] | None = None

        try:
            while True:
                envelope = await cell.mailbox.get()
                if isinstance(envelope.payload, _Stop):
                    reason = envelope.payload.reason
                    break

                try:
                    cell.state = await self._dispatch(cell, envelope)
                except Exception as exc:
                    log.exception(
                        f"{cell.actor_id} crashed handling "
                        f"{envelope.kind.name.lower()} {type(envelope.payload).__name__}"
                    )
                    crash = ActorCrashedError(f"{cell.actor_id} crashed: {exc!r}")
                    crash.__cause__ = exc
                    envelope.fail(crash)
                    if not await self._handle_crash(cell, exc):
                        reason = exc
                        break
                else:
                    cell.restart_record.record_success()
        except asyncio.CancelledError:
            reason = "killed"
            if envelope is not None:
                envelope.fail(ActorStoppedError(f"{cell.actor_id} was killed"))
        finally:
            cell.accepting = False
            if not cell.terminated:
                await self._terminate(cell, reason)
            self._cleanup(cell, reason)

    async def _handle_crash(self, cell: _ActorCell, exc: Exception) -> bool:
        """Apply the supervision strategy. Returns True if the actor restarted."""
        config = cell.supervision
        await self._terminate(cell, exc)

        if config.strategy is SupervisionStrategy.STOP:
            return False

        if cell.restart_record.exceeds_limit(config):
            log.warning(
                f"{cell.actor_id} exceeded {config.max_restarts} restarts "
                f"in {config.within_seconds}s, stopping"
            )
            return False

        backoff = cell.restart_record.calculate_next_backoff(config)
        cell.restart_record.record_restart(backoff)
        if backoff > 0:
            log.debug(f"{cell.actor_id} backing off for {backoff:.2f}s")
            await asyncio.sleep(backoff)

        actor = cell.actor_cls(**cell.kwargs)
        actor._ctx = Context(self_ref=cell.ref, system=self)  # type: ignore[arg-type]
        try:
            state = await actor.init()
        except Exception:
            log.exception(f"init failed while restarting {cell.actor_id}")
            return False

        cell.actor = actor
        cell.state = state
        cell.terminated = False
        log.info(
            f"Restarted {cell.actor_id} after {exc.__class__.__name__}, "
            f"backoff={backoff:.2f}s"
        )
        return True

    async def _terminate(self, cell: _ActorCell, reason: Any) -> None:
        cell.terminated = True
        if cell.actor is None:
            return
        try:
            await cell.actor.terminate(reason, cell.state)
        except Exception:
            log.exception(f"Error in terminate for {cell.actor_id}")

    def _cleanup(self, cell: _ActorCell, reason: Any) -> None:
        self._cells.pop(cell.actor_id, None)
        if cell.registered_name is not None:
            self._registry.unregister(cell.registered_name, cell.ref)

        assert cell.mailbox is not None
        for envelope in cell.mailbox.drain():
            if not isinstance(envelope.payload, _Stop):
                self._dead_letter(cell, envelope)

        if isinstance(reason, BaseException):
            log.warning(f"Stopped {cell.actor_id}, reason={reason!r}")
        else:
            log.debug(f"Stopped {cell.actor_id}, reason={reason}")
