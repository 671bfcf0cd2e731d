"""Shared fixtures and test actors for dexter tests."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any

import httpx
import pytest

from dexter import Actor, ActorSystem, LookupActor, Ok, SupervisorConfig, logger
from dexter.config import DexterConfig, SupervisionConfig


# Test message types


@dataclass(frozen=True)
class Tag:
    """A message stamped with its sender and sequence number."""

    sender: int
    seq: int


@dataclass(frozen=True)
class GetState:
    """Reply with the current actor state."""

    pass


@dataclass(frozen=True)
class Increment:
    amount: int = 1


@dataclass(frozen=True)
class Boom:
    """Make the actor raise."""

    error_message: str = "boom"


@dataclass(frozen=True)
class Wait:
    """Block the actor until the gate opens."""

    gate: asyncio.Event


@dataclass(frozen=True)
class StopSelf:
    pass


# Test actors


class Recorder(Actor[str]):
    """Writes every handled message to a shared journal, in order."""

    def __init__(self, journal: list[Any] | None = None):
        self.journal = journal if journal is not None else []

    async def init(self) -> str:
        return "initial"

    async def handle_call(self, msg: Any, state: str) -> tuple[Any, str]:
        match msg:
            case GetState():
                return state, state
            case Tag():
                self.journal.append(("call", msg))
                return msg, state
            case Wait(gate):
                await gate.wait()
                return "released", state
            case _:
                return Ok(), state

    async def handle_cast(self, msg: Any, state: str) -> str:
        match msg:
            case StopSelf():
                await self.ctx.system.stop(self.ctx.self_ref)
            case _:
                self.journal.append(("cast", msg))
        return state

    async def handle_info(self, msg: Any, state: str) -> str:
        self.journal.append(("info", msg))
        return state

    async def terminate(self, reason: Any, state: str) -> None:
        self.journal.append(("terminate", reason))


class Fragile(Actor[int]):
    """Counter that crashes on demand."""

    def __init__(self, journal: list[Any]):
        self.journal = journal

    async def init(self) -> int:
        self.journal.append("init")
        return 0

    async def handle_call(self, msg: Any, state: int) -> tuple[Any, int]:
        match msg:
            case Boom(error_message):
                raise RuntimeError(error_message)
            case GetState():
                return state, state
            case _:
                return Ok(), state

    async def handle_cast(self, msg: Any, state: int) -> int:
        match msg:
            case Increment(amount):
                return state + amount
            case Boom(error_message):
                raise RuntimeError(error_message)
            case _:
                return state

    async def terminate(self, reason: Any, state: int) -> None:
        label = reason if isinstance(reason, str) else type(reason).__name__
        self.journal.append(("terminate", label))


NO_BACKOFF = SupervisorConfig(backoff_initial=0.0)


# Fake PokéAPI


POKEDEX: dict[str, bytes] = {
    "25": b'{"name":"pikachu"}',
    "pikachu": b'{"name":"pikachu","id":25}',
    "1": b'{"name":"bulbasaur"}',
}

_POKEMON_PATH = re.compile(r"/api/v2/pokemon/([^/]+)/")


def pokeapi_handler(request: httpx.Request) -> httpx.Response:
    match = _POKEMON_PATH.fullmatch(request.url.path)
    if request.method != "GET" or match is None:
        return httpx.Response(400, content=b"Bad Request")
    key = match.group(1)
    if key == "missingno":
        raise httpx.ConnectError("[Errno 111] Connection refused", request=request)
    if key in POKEDEX:
        return httpx.Response(200, content=POKEDEX[key])
    return httpx.Response(404, content=b"Not Found")


class TrackingTransport(httpx.MockTransport):
    """MockTransport that remembers requests and whether it was closed."""

    def __init__(self, handler: Any = pokeapi_handler):
        self.requests: list[httpx.Request] = []
        self.closed = False

        def recording(request: httpx.Request) -> Any:
            self.requests.append(request)
            return handler(request)

        super().__init__(recording)

    async def aclose(self) -> None:
        self.closed = True


# Fixtures


@pytest.fixture
def config() -> DexterConfig:
    return DexterConfig(supervision=SupervisionConfig(backoff_initial=0.0))


@pytest.fixture
async def system(config: DexterConfig):
    """Create and clean up an ActorSystem."""
    async with ActorSystem(config) as sys:
        yield sys


@pytest.fixture
def transport() -> TrackingTransport:
    return TrackingTransport()


@pytest.fixture
async def pokeapi(system: ActorSystem, transport: TrackingTransport):
    """Lookup actor registered as "pokeapi" and backed by the fake API."""
    return await system.spawn(
        LookupActor,
        name="pokeapi",
        base_url="https://pokeapi.test",
        transport=transport,
    )


@pytest.fixture(autouse=True)
def restore_dexter_logger():
    """Undo level and propagation changes made by a test."""
    dexter_logger = logging.getLogger("dexter")
    level, propagate = dexter_logger.level, dexter_logger.propagate
    yield
    dexter_logger.setLevel(level)
    dexter_logger.propagate = propagate


@pytest.fixture
def dexter_logs(caplog: pytest.LogCaptureFixture) -> pytest.LogCaptureFixture:
    """caplog with dexter records propagated to it, down to debug level."""
    logger.set_propagate(True)
    logger.set_level("debug")
    caplog.set_level(logging.DEBUG)
    return caplog
