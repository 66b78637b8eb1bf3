"""Bounded sample buffers."""

from __future__ import annotations

import threading
from collections import deque
from typing import Deque, Generic, Iterator, Optional, TypeVar

T = TypeVar("T")


class SampleBuffer(Generic[T]):
    """Fixed-capacity FIFO: appending past capacity evicts the oldest item."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._items: Deque[T] = deque(maxlen=int(capacity))

    @property
    def capacity(self) -> int:
        return int(self._items.maxlen or 0)

    def append(self, item: T) -> None:
        self._items.append(item)

    def clear(self) -> None:
        self._items.clear()

    def latest(self, n: int) -> list[T]:
        """Return the newest ``n`` items in arrival order."""
        if n <= 0:
            return []
        return list(self._items)[-n:]

    def last(self) -> Optional[T]:
        return self._items[-1] if self._items else None

    def to_list(self) -> list[T]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items))

    def __getitem__(self, index: int) -> T:
        return self._items[index]


class LatestSample(Generic[T]):
    """Single-slot hand-off between a producer thread and a polling consumer.

    Calling the instance takes the pending sample (or None) and empties the
    slot, so a sample is consumed at most once.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value: Optional[T] = None

    def put(self, value: T) -> None:
        with self._lock:
            self._value = value

    def __call__(self) -> Optional[T]:
        with self._lock:
            value, self._value = self._value, None
        return value
