"""Supervision policy for dexter actors.

Erlang-style restart handling: a crashed actor is either restarted with a
fresh ``init()`` (bounded by a sliding restart window and exponential
backoff) or stopped for good.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from .actor import Actor


class SupervisionStrategy(Enum):
    """What to do when an actor crashes."""

    RESTART = auto()  # Re-create the actor and run init() again
    STOP = auto()  # Stop the actor permanently


@dataclass(frozen=True, slots=True)
class SupervisorConfig:
    """Configuration for supervision behavior.

    Attributes:
        strategy: How to handle a crash
        max_restarts: Maximum restarts allowed within the time window
        within_seconds: Time window for counting restarts
        backoff_initial: Initial backoff delay in seconds
        backoff_max: Maximum backoff delay in seconds
        backoff_multiplier: Multiplier for exponential backoff
    """

    strategy: SupervisionStrategy = SupervisionStrategy.RESTART
    max_restarts: int = 3
    within_seconds: float = 60.0
    backoff_initial: float = 0.1
    backoff_max: float = 30.0
    backoff_multiplier: float = 2.0


def supervised(
    strategy: SupervisionStrategy = SupervisionStrategy.RESTART,
    max_restarts: int = 3,
    within_seconds: float = 60.0,
    backoff_initial: float = 0.1,
    backoff_max: float = 30.0,
    backoff_multiplier: float = 2.0,
) -> Callable[[type["Actor[Any]"]], type["Actor[Any]"]]:
    """Decorator to configure supervision for an actor class.

    Usage:
        @supervised(strategy=SupervisionStrategy.RESTART, max_restarts=5)
        class MyActor(Actor[None]):
            async def handle_call(self, msg, state):
                ...

    An explicit ``supervision=`` passed to ``ActorSystem.spawn`` wins over
    the decorator.
    """

    def decorator(cls: type["Actor[Any]"]) -> type["Actor[Any]"]:
        cls.supervision_config = SupervisorConfig(  # type: ignore[attr-defined]
            strategy=strategy,
            max_restarts=max_restarts,
            within_seconds=within_seconds,
            backoff_initial=backoff_initial,
            backoff_max=backoff_max,
            backoff_multiplier=backoff_multiplier,
        )
        return cls

    return decorator


@dataclass
class RestartRecord:
    """Tracks restart history for one actor."""

    restart_times: list[float] = field(default_factory=list)
    current_backoff: float = 0.0
    consecutive_failures: int = 0

    def record_restart(self, backoff: float) -> None:
        self.restart_times.append(time.monotonic())
        self.current_backoff = backoff
        self.consecutive_failures += 1

    def record_success(self) -> None:
        """Reset the failure streak after a message was handled cleanly."""
        self.consecutive_failures = 0
        self.current_backoff = 0.0

    def restarts_in_window(self, within_seconds: float) -> int:
        cutoff = time.monotonic() - within_seconds
        self.restart_times = [t for t in self.restart_times if t >= cutoff]
        return len(self.restart_times)

    def exceeds_limit(self, config: SupervisorConfig) -> bool:
        return self.restarts_in_window(config.within_seconds) >= config.max_restarts

    def calculate_next_backoff(self, config: SupervisorConfig) -> float:
        if self.current_backoff == 0:
            return config.backoff_initial
        return min(
            self.current_backoff * config.backoff_multiplier,
            config.backoff_max,
        )
