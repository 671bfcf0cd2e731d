"""PokéAPI lookup actor.

A single supervised actor that turns ``Lookup(key)`` calls into one
``GET /api/v2/pokemon/<key>/`` and replies with the raw body. Transport
failures come back as ``Err`` replies; they never crash the actor.

    async with ActorSystem() as system:
        await start(system)
        match await fetch(system, "pikachu"):
            case Ok(body):
                print(body.decode())
            case Err(reason):
                print("lookup failed:", reason)
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx

from . import logger
from .actor import Actor, ActorRef
from .config import DexterConfig, UnknownCallPolicy
from .errors import NameNotFoundError
from .messages import Err, Lookup, Ok, Response
from .system import ActorSystem

POKEMON_PATH = "/api/v2/pokemon/{key}/"


def _normalize_key(key: Any) -> str | None:
    """Return the URL path segment for ``key``, or None if it is malformed."""
    if isinstance(key, bool):
        return None
    if isinstance(key, int):
        return str(key) if key >= 0 else None
    if isinstance(key, str):
        segment = quote(key.strip().lower(), safe="")
        # Dot segments are collapsed by URL normalisation.
        if segment in ("", ".", ".."):
            return None
        return segment
    return None


def _reason(exc: httpx.TransportError) -> str:
    text = str(exc).strip()
    return text or exc.__class__.__name__


class LookupActor(Actor[None]):
    """Proxies lookups to the PokéAPI, one request at a time.

    The state is unused and stays ``None``; the HTTP client is a resource
    owned by the instance and is rebuilt by ``init`` on every restart.
    """

    def __init__(
        self,
        base_url: str = "https://pokeapi.co",
        *,
        timeout: float = 10.0,
        unknown_call: UnknownCallPolicy = "empty_reply",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self.unknown_call = unknown_call
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def init(self) -> None:
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
            transport=self._transport,
        )
        return None

    async def handle_call(self, msg: Any, state: None) -> tuple[Response, None]:
        match msg:
            case Lookup(key=key) if (segment := _normalize_key(key)) is not None:
                return await self._get(segment), state
            case _:
                return self._unrecognized(msg), state

    async def handle_cast(self, msg: Any, state: None) -> None:
        logger.debug("Ignoring cast", actor=self.ctx.name, type=type(msg).__name__)
        return state

    async def handle_info(self, msg: Any, state: None) -> None:
        logger.debug("Ignoring info", actor=self.ctx.name, type=type(msg).__name__)
        return state

    async def terminate(self, reason: Any, state: None) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _get(self, segment: str) -> Response:
        assert self._client is not None
        path = POKEMON_PATH.format(key=segment)
        logger.debug("GET", url=f"{self.base_url}{path}")
        try:
            response = await self._client.get(path)
        except httpx.TransportError as exc:
            reason = _reason(exc)
            logger.warn("Lookup failed", path=path, reason=reason)
            return Err(reason)
        # Status codes are not inspected: a 404 body is a reply like any other.
        logger.debug("Lookup done", path=path, status=response.status_code, size=len(response.content))
        return Ok(response.content)

    def _unrecognized(self, msg: Any) -> Response:
        name = type(msg).__name__
        if self.unknown_call == "error":
            return Err(f"unrecognized call: {name}")
        logger.debug("Unrecognized call, replying empty", type=name)
        return Ok()


async def start(system: ActorSystem, config: DexterConfig | None = None) -> ActorRef[Any]:
    """Spawn the lookup actor under its well-known name.

    Settings come from ``config`` or, if omitted, from the system's own
    configuration.
    """
    config = config or system.config
    return await system.spawn(
        LookupActor,
        name=config.lookup.name,
        supervision=config.supervisor_config(),
        mailbox=config.mailbox,
        base_url=config.lookup.base_url,
        timeout=config.lookup.timeout,
        unknown_call=config.lookup.unknown_call,
    )


async def fetch(
    system: ActorSystem,
    key: str | int,
    *,
    name: str | None = None,
    timeout: float | None = None,
) -> Response:
    """Look up ``key`` through the registered lookup actor.

    Blocks only the calling coroutine; other callers keep queueing.

    Args:
        system: The system the lookup actor runs in
        key: Pokemon name or numeric id
        name: Registered name of the actor (default: from config)
        timeout: Seconds to wait for the reply (default: ``call_timeout``
            from config)

    Raises:
        NameNotFoundError: If no lookup actor is registered
    """
    name = name or system.config.lookup.name
    ref = system.whereis(name)
    if ref is None:
        raise NameNotFoundError(f"No lookup actor registered as {name!r}")
    if timeout is None:
        timeout = system.config.lookup.call_timeout
    return await ref.call(Lookup(key), timeout=timeout)
