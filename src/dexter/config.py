"""TOML-based configuration for dexter.

Provides ``load_config`` / ``discover_config`` for loading ``dexter.toml``
and a small hierarchy of frozen dataclasses for the lookup actor, mailbox,
supervision, and logging settings.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, get_args

from .errors import ConfigError
from .mailbox import MailboxOverflowStrategy
from .supervision import SupervisionStrategy, SupervisorConfig


__all__ = [
    "CONFIG_FILENAME",
    "DexterConfig",
    "LoggingConfig",
    "LookupConfig",
    "MailboxConfig",
    "MailboxStrategy",
    "SupervisionConfig",
    "UnknownCallPolicy",
    "discover_config",
    "load_config",
]

CONFIG_FILENAME = "dexter.toml"

type MailboxStrategy = Literal["drop_new", "drop_oldest", "backpressure"]
type UnknownCallPolicy = Literal["empty_reply", "error"]

_MAILBOX_STRATEGIES: tuple[str, ...] = get_args(MailboxStrategy.__value__)
_UNKNOWN_CALL_POLICIES: tuple[str, ...] = get_args(UnknownCallPolicy.__value__)
_SUPERVISION_STRATEGIES = ("restart", "stop")
_LOG_LEVELS = ("debug", "info", "warn", "error", "off")


@dataclass(frozen=True)
class LookupConfig:
    """Settings for the PokéAPI lookup actor.

    Parameters
    ----------
    name : str
        Well-known name the actor is registered under.
    base_url : str
        Scheme and host of the API; ``/api/v2/pokemon/<key>/`` is appended.
    timeout : float
        Outbound HTTP timeout in seconds (connect, read, write, and pool).
    call_timeout : float | None
        How long ``fetch`` waits for the actor's reply. ``None`` waits
        until the actor answers; ``timeout`` already bounds the request.
    unknown_call : UnknownCallPolicy
        Reply to unrecognized calls: ``"empty_reply"`` answers ``Ok(b"")``,
        ``"error"`` answers ``Err(...)``.

    Examples
    --------
    >>> LookupConfig(base_url="http://localhost:8000", timeout=2.0)
    LookupConfig(name='pokeapi', base_url='http://localhost:8000', ...)
    """

    name: str = "pokeapi"
    base_url: str = "https://pokeapi.co"
    timeout: float = 10.0
    call_timeout: float | None = None
    unknown_call: UnknownCallPolicy = "empty_reply"

    def __post_init__(self) -> None:
        if self.unknown_call not in _UNKNOWN_CALL_POLICIES:
            raise ConfigError(
                f"unknown_call must be one of {_UNKNOWN_CALL_POLICIES}, "
                f"got {self.unknown_call!r}"
            )
        if self.timeout <= 0:
            raise ConfigError("timeout must be > 0")
        if self.call_timeout is not None and self.call_timeout <= 0:
            raise ConfigError("call_timeout must be > 0")


@dataclass(frozen=True)
class MailboxConfig:
    """Default mailbox settings applied to every actor unless overridden.

    Parameters
    ----------
    capacity : int | None
        Maximum number of queued messages. ``None`` for unbounded.
    strategy : MailboxStrategy
        Overflow strategy: ``"drop_new"``, ``"drop_oldest"``, or
        ``"backpressure"``.
    """

    capacity: int | None = None
    strategy: MailboxStrategy = "drop_new"

    def __post_init__(self) -> None:
        if self.strategy not in _MAILBOX_STRATEGIES:
            raise ConfigError(
                f"mailbox strategy must be one of {_MAILBOX_STRATEGIES}, "
                f"got {self.strategy!r}"
            )
        if self.capacity is not None and self.capacity <= 0:
            raise ConfigError("mailbox capacity must be > 0")

    @property
    def overflow(self) -> MailboxOverflowStrategy:
        return MailboxOverflowStrategy[self.strategy]


@dataclass(frozen=True)
class SupervisionConfig:
    """Default supervision settings.

    Parameters
    ----------
    strategy : str
        ``"restart"`` or ``"stop"``.
    max_restarts : int
        Maximum restarts allowed within the time window.
    within_seconds : float
        Rolling window (seconds) for restart counting.
    backoff_initial, backoff_max, backoff_multiplier : float
        Exponential backoff between restarts.

    Examples
    --------
    >>> SupervisionConfig(strategy="stop")
    SupervisionConfig(strategy='stop', max_restarts=3, within_seconds=60.0, ...)
    """

    strategy: str = "restart"
    max_restarts: int = 3
    within_seconds: float = 60.0
    backoff_initial: float = 0.1
    backoff_max: float = 30.0
    backoff_multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.strategy not in _SUPERVISION_STRATEGIES:
            raise ConfigError(
                f"supervision strategy must be one of {_SUPERVISION_STRATEGIES}, "
                f"got {self.strategy!r}"
            )

    def build(self) -> SupervisorConfig:
        return SupervisorConfig(
            strategy=SupervisionStrategy[self.strategy.upper()],
            max_restarts=self.max_restarts,
            within_seconds=self.within_seconds,
            backoff_initial=self.backoff_initial,
            backoff_max=self.backoff_max,
            backoff_multiplier=self.backoff_multiplier,
        )


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "info"

    def __post_init__(self) -> None:
        if self.level.lower() not in _LOG_LEVELS:
            raise ConfigError(f"log level must be one of {_LOG_LEVELS}, got {self.level!r}")


@dataclass(frozen=True)
class DexterConfig:
    """Top-level configuration container.

    Typically created via ``load_config()`` but can be constructed manually.

    Examples
    --------
    >>> config = DexterConfig(lookup=LookupConfig(timeout=3.0))
    >>> config.lookup.timeout
    3.0
    """

    system_name: str = "dexter"
    lookup: LookupConfig = field(default_factory=LookupConfig)
    mailbox: MailboxConfig = field(default_factory=MailboxConfig)
    supervision: SupervisionConfig = field(default_factory=SupervisionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def supervisor_config(self) -> SupervisorConfig:
        return self.supervision.build()


def discover_config(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for ``dexter.toml``.

    Returns
    -------
    Path | None
        Path to the discovered config file, or ``None`` if not found.
    """
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def _section(raw: dict[str, Any], name: str, cls: type[Any]) -> Any:
    values = raw.get(name, {})
    try:
        return cls(**values)
    except TypeError as exc:
        raise ConfigError(f"invalid [{name}] section: {exc}") from exc


def load_config(path: Path | None = None) -> DexterConfig:
    """Load a ``DexterConfig`` from a TOML file.

    If *path* is ``None``, auto-discovers ``dexter.toml`` by walking up from
    the current working directory. Returns the default config if no file
    is found.

    Raises
    ------
    FileNotFoundError
        If an explicit *path* is given but does not exist.
    ConfigError
        If a section holds an unknown key or an invalid value.

    Examples
    --------
    >>> config = load_config(Path("dexter.toml"))
    >>> config.lookup.name
    'pokeapi'
    """
    if path is None:
        discovered = discover_config()
        if discovered is None:
            return DexterConfig()
        path = discovered

    if not path.exists():
        msg = f"Config file not found: {path}"
        raise FileNotFoundError(msg)

    with path.open("rb") as f:
        try:
            raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"{path}: {exc}") from exc

    system_raw = raw.get("system", {})

    return DexterConfig(
        system_name=system_raw.get("name", "dexter"),
        lookup=_section(raw, "lookup", LookupConfig),
        mailbox=_section(raw, "mailbox", MailboxConfig),
        supervision=_section(raw, "supervision", SupervisionConfig),
        logging=_section(raw, "logging", LoggingConfig),
    )
