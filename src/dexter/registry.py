"""Name registry: locate actors by well-known name instead of by handle."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

from .errors import NameTakenError

if TYPE_CHECKING:
    from .actor import ActorRef

log = logging.getLogger(__name__)


class Registry:
    """Maps logical names to live actor references.

    One registry belongs to one ``ActorSystem``; entries are added when a
    named actor is spawned and removed when it stops.

    Usage:
        registry = Registry()
        registry.register("pokeapi", ref)
        registry.whereis("pokeapi")  # -> ref
    """

    def __init__(self) -> None:
        self._entries: dict[str, ActorRef[Any]] = {}

    @staticmethod
    def validate_name(name: str) -> None:
        if not name:
            raise ValueError("Actor name must not be empty")
        if name.startswith("__"):
            raise ValueError(
                f"Names starting with '__' are reserved for internal use: {name}"
            )

    def register(self, name: str, ref: ActorRef[Any]) -> None:
        """Bind ``name`` to ``ref``.

        Raises:
            NameTakenError: If a live actor already holds the name
            ValueError: If the name is empty or reserved
        """
        self.validate_name(name)
        current = self._entries.get(name)
        if current is not None and current != ref:
            if current.is_alive:
                raise NameTakenError(f"Name {name!r} is already registered to {current}")
            log.debug("Replacing stale registration for %r", name)
        self._entries[name] = ref

    def unregister(self, name: str, ref: ActorRef[Any] | None = None) -> bool:
        """Remove ``name``; with ``ref`` given, only if it still points there."""
        current = self._entries.get(name)
        if current is None:
            return False
        if ref is not None and current != ref:
            return False
        del self._entries[name]
        return True

    def whereis(self, name: str) -> ActorRef[Any] | None:
        return self._entries.get(name)

    def names(self) -> list[str]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))
