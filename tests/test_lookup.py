"""Tests for the PokéAPI lookup actor."""

import asyncio

import httpx
import pytest

from dexter import (
    ActorRef,
    ActorSystem,
    Err,
    Lookup,
    LookupActor,
    NameNotFoundError,
    Ok,
    fetch,
    start,
)
from dexter.config import DexterConfig, LookupConfig
from dexter.lookup import _normalize_key

from .conftest import TrackingTransport


class TestNormalizeKey:
    @pytest.mark.parametrize(
        "key, expected",
        [
            (25, "25"),
            ("25", "25"),
            ("Pikachu", "pikachu"),
            ("  mr-mime ", "mr-mime"),
            ("a/b", "a%2Fb"),
            (0, "0"),
        ],
    )
    def test_valid_keys(self, key, expected):
        assert _normalize_key(key) == expected

    @pytest.mark.parametrize("key", ["", "   ", -1, True, None, 2.5, b"25", ".", "..", " .. "])
    def test_malformed_keys(self, key):
        assert _normalize_key(key) is None


class TestLookup:
    async def test_lookup_by_id(self, pokeapi: ActorRef, transport: TrackingTransport):
        reply = await pokeapi.call(Lookup("25"))

        assert reply == Ok(b'{"name":"pikachu"}')
        assert reply.ok
        [request] = transport.requests
        assert request.method == "GET"
        assert str(request.url) == "https://pokeapi.test/api/v2/pokemon/25/"

    async def test_lookup_by_int_and_name(self, pokeapi: ActorRef):
        assert await pokeapi.call(Lookup(25)) == Ok(b'{"name":"pikachu"}')
        assert await pokeapi.call(Lookup("PIKACHU")) == Ok(b'{"name":"pikachu","id":25}')

    async def test_not_found_body_is_passed_through(self, pokeapi: ActorRef):
        assert await pokeapi.call(Lookup("agumon")) == Ok(b"Not Found")

    async def test_connection_refused_is_err_and_actor_survives(self, pokeapi: ActorRef):
        reply = await pokeapi.call(Lookup("missingno"))

        assert isinstance(reply, Err)
        assert not reply.ok
        assert "Connection refused" in reply.reason
        assert pokeapi.is_alive
        assert await pokeapi.call(Lookup(1)) == Ok(b'{"name":"bulbasaur"}')

    async def test_empty_transport_message_uses_class_name(self, system: ActorSystem):
        def timeout(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("", request=request)

        ref = await system.spawn(
            LookupActor, base_url="https://pokeapi.test", transport=httpx.MockTransport(timeout)
        )
        assert await ref.call(Lookup(25)) == Err("ReadTimeout")

    async def test_real_refused_connection(self, system: ActorSystem):
        ref = await system.spawn(LookupActor, base_url="http://127.0.0.1:1", timeout=2.0)

        reply = await ref.call(Lookup(25))

        assert isinstance(reply, Err)
        assert reply.reason
        assert ref.is_alive

    async def test_unrecognized_calls_get_empty_reply(self, pokeapi: ActorRef, transport):
        for msg in ("pikachu", 25, Lookup(""), Lookup(-4), object()):
            assert await pokeapi.call(msg) == Ok(b"")
        assert transport.requests == []

    async def test_repeated_unrecognized_call_gets_same_reply(self, pokeapi: ActorRef):
        replies = [await pokeapi.call("pikachu") for _ in range(5)]
        assert replies == [Ok(b"")] * 5

    @pytest.mark.parametrize("key", [".", ".."])
    async def test_dot_keys_never_leave_pokemon_path(
        self, pokeapi: ActorRef, transport: TrackingTransport, key: str
    ):
        assert await pokeapi.call(Lookup(key)) == Ok(b"")
        assert transport.requests == []

    async def test_error_policy_for_unrecognized_calls(self, system: ActorSystem, transport):
        ref = await system.spawn(
            LookupActor,
            base_url="https://pokeapi.test",
            unknown_call="error",
            transport=transport,
        )

        assert await ref.call("pikachu") == Err("unrecognized call: str")
        assert await ref.call(Lookup(25)) == Ok(b'{"name":"pikachu"}')

    async def test_cast_and_info_are_ignored(
        self, system: ActorSystem, pokeapi: ActorRef, transport: TrackingTransport
    ):
        assert await pokeapi.cast(Lookup(25)) is None
        system.notify(pokeapi, Lookup(25))
        system.notify(pokeapi, "tick")

        assert await pokeapi.call(Lookup(1)) == Ok(b'{"name":"bulbasaur"}')
        assert len(transport.requests) == 1

    async def test_concurrent_callers_get_their_own_reply(self, pokeapi: ActorRef):
        keys = [25, "pikachu", 1, "missingno", "agumon"] * 3

        replies = await asyncio.gather(*(pokeapi.call(Lookup(k)) for k in keys))

        for key, reply in zip(keys, replies):
            match key:
                case 25:
                    assert reply == Ok(b'{"name":"pikachu"}')
                case "pikachu":
                    assert reply == Ok(b'{"name":"pikachu","id":25}')
                case 1:
                    assert reply == Ok(b'{"name":"bulbasaur"}')
                case "missingno":
                    assert isinstance(reply, Err)
                case "agumon":
                    assert reply == Ok(b"Not Found")

    async def test_requests_are_sequential(self, system: ActorSystem):
        in_flight = 0
        peak = 0

        async def slow(request: httpx.Request) -> httpx.Response:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return httpx.Response(200, content=b"{}")

        ref = await system.spawn(
            LookupActor, base_url="https://pokeapi.test", transport=httpx.MockTransport(slow)
        )
        await asyncio.gather(*(ref.call(Lookup(n)) for n in range(5)))

        assert peak == 1

    async def test_stop_closes_http_client(
        self, system: ActorSystem, pokeapi: ActorRef, transport: TrackingTransport
    ):
        await pokeapi.call(Lookup(25))
        await system.stop(pokeapi)

        assert transport.closed


class TestStartAndFetch:
    async def test_fetch_through_registered_actor(self, system: ActorSystem, pokeapi: ActorRef):
        assert await fetch(system, 25) == Ok(b'{"name":"pikachu"}')
        assert await fetch(system, "pikachu", name="pokeapi") == Ok(b'{"name":"pikachu","id":25}')

    async def test_fetch_without_actor_raises(self, system: ActorSystem):
        with pytest.raises(NameNotFoundError):
            await fetch(system, 25)

    async def test_fetch_uses_call_timeout_from_config(self):
        async def hang(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(0.2)
            return httpx.Response(200, content=b"{}")

        config = DexterConfig(lookup=LookupConfig(call_timeout=0.05))
        async with ActorSystem(config) as system:
            await system.spawn(
                LookupActor,
                name="pokeapi",
                base_url="https://pokeapi.test",
                transport=httpx.MockTransport(hang),
            )
            with pytest.raises(asyncio.TimeoutError):
                await fetch(system, 25)

    async def test_start_registers_configured_actor(self):
        config = DexterConfig(lookup=LookupConfig(name="dex", base_url="http://127.0.0.1:1"))
        async with ActorSystem(config) as system:
            ref = await start(system)

            assert system.whereis("dex") == ref
            assert await system.call("dex", "hello") == Ok(b"")
            assert isinstance(await fetch(system, 25), Err)

    async def test_start_twice_raises(self, system: ActorSystem):
        await start(system, DexterConfig(lookup=LookupConfig(base_url="http://127.0.0.1:1")))
        with pytest.raises(ValueError):
            await start(system)
