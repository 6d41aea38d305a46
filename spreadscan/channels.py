"""A thread-safe unbounded channel for passing messages between workers."""

from __future__ import annotations

import threading
from collections import deque
from typing import Generic, Iterator, Optional, TypeVar

T = TypeVar("T")


class ChannelClosed(Exception):
    """The channel has been closed and holds no more items."""


class ChannelEmpty(Exception):
    """The channel is open but currently holds no items."""


class Channel(Generic[T]):
    """Unbounded FIFO queue that can be closed by either side."""

    def __init__(self) -> None:
        self._items: deque = deque()
        self._cond = threading.Condition()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, item: T) -> None:
        with self._cond:
            if self._closed:
                raise ChannelClosed("cannot send on a closed channel")
            self._items.append(item)
            self._cond.notify()

    def try_recv(self) -> T:
        """Take the next item without waiting."""
        with self._cond:
            if self._items:
                return self._items.popleft()
            if self._closed:
                raise ChannelClosed("channel closed")
            raise ChannelEmpty("channel empty")

    def recv(self, timeout: Optional[float] = None) -> T:
        """Wait for the next item; raises TimeoutError if none arrives in time."""
        with self._cond:
            ready = self._cond.wait_for(lambda: bool(self._items) or self._closed, timeout)
            if not ready:
                raise TimeoutError(f"no item received within {timeout} seconds")
            if self._items:
                return self._items.popleft()
            raise ChannelClosed("channel closed")

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def is_empty(self) -> bool:
        with self._cond:
            return not self._items

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)

    def __iter__(self) -> Iterator[T]:
        """Yield items until the channel is closed and drained."""
        while True:
            try:
                yield self.recv()
            except ChannelClosed:
                return