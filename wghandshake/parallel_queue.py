"""A bounded multi-consumer queue shared by a pool of workers."""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Generic, Iterator, TypeVar

T = TypeVar("T")


class _Channel(Generic[T]):
    def __init__(self, capacity: int) -> None:
        self.capacity = capacity
        self.items: deque[T] = deque()
        self.closed = False
        self.cond = threading.Condition()


class Receiver(Generic[T]):
    """One consuming end of a ParallelQueue; all receivers share the items."""

    def __init__(self, channel: _Channel[T]) -> None:
        self._channel = channel

    def recv(self, timeout: float | None = None) -> T:
        """Take the next item.

        Raises TimeoutError if nothing arrives within ``timeout`` seconds and
        EOFError once the queue is closed and drained.
        """
        channel = self._channel
        deadline = None if timeout is None else time.monotonic() + timeout
        with channel.cond:
            while not channel.items:
                if channel.closed:
                    raise EOFError("queue closed")
                if deadline is None:
                    channel.cond.wait()
                else:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise TimeoutError("no item received")
                    channel.cond.wait(remaining)
            item = channel.items.popleft()
            channel.cond.notify_all()
            return item

    def __iter__(self) -> Iterator[T]:
        while True:
            try:
                yield self.recv()
            except EOFError:
                return


class ParallelQueue(Generic[T]):
    """A bounded queue read by ``queues`` receivers, each holding ``capacity`` items at most."""

    def __init__(self, queues: int, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._channel: _Channel[T] = _Channel(capacity)
        self.receivers: list[Receiver[T]] = [Receiver(self._channel) for _ in range(queues)]

    def send(self, value: T) -> None:
        """Enqueue ``value``, blocking while full; ignored once closed."""
        channel = self._channel
        with channel.cond:
            while not channel.closed and len(channel.items) >= channel.capacity:
                channel.cond.wait()
            if channel.closed:
                return
            channel.items.append(value)
            channel.cond.notify_all()

    def close(self) -> None:
        """Stop accepting items; receivers drain what is left and then stop."""
        channel = self._channel
        with channel.cond:
            channel.closed = True
            channel.cond.notify_all()