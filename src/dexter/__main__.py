"""Command-line lookups through a supervised lookup actor.

Usage:
    python -m dexter pikachu 25 bulbasaur
    python -m dexter --base-url http://localhost:8000 --timeout 2 ditto
    python -m dexter --config ./dexter.toml --log-level debug mew
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import sys
from pathlib import Path

from . import logger
from .config import DexterConfig, load_config
from .errors import ConfigError, DexterError
from .lookup import fetch, start
from .messages import Err, Ok, Response
from .system import ActorSystem


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dexter",
        description="Look up pokemon by name or id through a supervised actor.",
    )
    parser.add_argument("keys", nargs="+", metavar="KEY", help="pokemon name or numeric id")
    parser.add_argument("--config", type=Path, default=None, help="path to dexter.toml")
    parser.add_argument("--base-url", default=None, help="API base URL")
    parser.add_argument("--timeout", type=float, default=None, help="HTTP timeout in seconds")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["debug", "info", "warn", "error", "off"],
    )
    return parser


def resolve_config(args: argparse.Namespace) -> DexterConfig:
    config = load_config(args.config)
    overrides = {}
    if args.base_url is not None:
        overrides["base_url"] = args.base_url
    if args.timeout is not None:
        overrides["timeout"] = args.timeout
    if overrides:
        config = dataclasses.replace(
            config, lookup=dataclasses.replace(config.lookup, **overrides)
        )
    if args.log_level is not None:
        config = dataclasses.replace(
            config, logging=dataclasses.replace(config.logging, level=args.log_level)
        )
    return config


def _parse_key(raw: str) -> str | int:
    return int(raw) if raw.isdecimal() else raw


async def _lookup(system: ActorSystem, key: str) -> Response:
    try:
        return await fetch(system, _parse_key(key))
    except (DexterError, TimeoutError) as exc:
        return Err(str(exc) or type(exc).__name__)


async def run(config: DexterConfig, keys: list[str]) -> int:
    async with ActorSystem(config) as system:
        await start(system)
        results = await asyncio.gather(*(_lookup(system, k) for k in keys))

    failures = 0
    for key, result in zip(keys, results):
        match result:
            case Ok(body):
                sys.stdout.write(body.decode("utf-8", errors="replace") + "\n")
            case Err(reason):
                failures += 1
                sys.stderr.write(f"{key}: {reason}\n")
    return 1 if failures else 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = resolve_config(args)
    except (ConfigError, FileNotFoundError) as exc:
        sys.stderr.write(f"dexter: {exc}\n")
        return 2
    logger.set_level(config.logging.level)
    return asyncio.run(run(config, args.keys))


if __name__ == "__main__":
    sys.exit(main())
