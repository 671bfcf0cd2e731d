"""Actor mailbox with configurable overflow strategies.

A FIFO async queue. Unbounded by default; when bounded, one of three
overflow policies applies: drop newest, drop oldest, or backpressure.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from enum import Enum, auto


class MailboxOverflowStrategy(Enum):
    """Policy applied when a bounded mailbox is full.

    Examples
    --------
    >>> from dexter import MailboxOverflowStrategy
    >>> MailboxOverflowStrategy.drop_new
    <MailboxOverflowStrategy.drop_new: 1>
    """

    drop_new = auto()
    drop_oldest = auto()
    backpressure = auto()


class Mailbox[M]:
    """Async FIFO queue for actor message delivery.

    Parameters
    ----------
    capacity : int | None
        Maximum number of messages. ``None`` for unbounded.
    overflow : MailboxOverflowStrategy
        Policy when the mailbox is full.
    on_drop : Callable[[M], None] | None
        Called with every message discarded by ``drop_new`` or
        ``drop_oldest``.

    Examples
    --------
    >>> mb = Mailbox[str](capacity=10, overflow=MailboxOverflowStrategy.drop_new)
    """

    def __init__(
        self,
        capacity: int | None = None,
        overflow: MailboxOverflowStrategy = MailboxOverflowStrategy.drop_new,
        on_drop: Callable[[M], None] | None = None,
    ) -> None:
        if capacity is not None and capacity <= 0:
            raise ValueError("capacity must be > 0")
        self._overflow = overflow
        self._on_drop = on_drop
        if capacity is None:
            self._queue: asyncio.Queue[M] = asyncio.Queue()
        else:
            self._queue = asyncio.Queue(maxsize=capacity)
        self._capacity = capacity

    @property
    def capacity(self) -> int | None:
        return self._capacity

    @property
    def overflow(self) -> MailboxOverflowStrategy:
        return self._overflow

    def _dropped(self, msg: M) -> None:
        if self._on_drop is not None:
            self._on_drop(msg)

    def put(self, msg: M) -> None:
        """Enqueue a message, applying the overflow strategy if full.

        Parameters
        ----------
        msg : M
            The message to enqueue.

        Raises
        ------
        asyncio.QueueFull
            When the overflow strategy is ``backpressure`` and the
            mailbox is at capacity.
        """
        if self._capacity is None:
            self._queue.put_nowait(msg)
            return

        match self._overflow:
            case MailboxOverflowStrategy.drop_new:
                if self._queue.full():
                    self._dropped(msg)
                else:
                    self._queue.put_nowait(msg)
            case MailboxOverflowStrategy.drop_oldest:
                if self._queue.full():
                    try:
                        self._dropped(self._queue.get_nowait())
                    except asyncio.QueueEmpty:
                        pass
                self._queue.put_nowait(msg)
            case MailboxOverflowStrategy.backpressure:
                if self._queue.full():
                    raise asyncio.QueueFull()
                self._queue.put_nowait(msg)

    async def put_async(self, msg: M) -> None:
        """Enqueue a message, waiting while the mailbox is full.

        Parameters
        ----------
        msg : M
            The message to enqueue.
        """
        await self._queue.put(msg)

    async def get(self) -> M:
        """Dequeue the next message, waiting if the mailbox is empty.

        Returns
        -------
        M
            The oldest message in the queue.
        """
        return await self._queue.get()

    def get_nowait(self) -> M:
        """Dequeue the next message without waiting.

        Raises
        ------
        asyncio.QueueEmpty
            If the mailbox is empty.
        """
        return self._queue.get_nowait()

    def drain(self) -> list[M]:
        """Remove and return every queued message, oldest first."""
        drained: list[M] = []
        while not self._queue.empty():
            drained.append(self._queue.get_nowait())
        return drained

    def size(self) -> int:
        """Return the number of messages currently in the mailbox."""
        return self._queue.qsize()

    def empty(self) -> bool:
        return self._queue.empty()

    def full(self) -> bool:
        return self._queue.full()
