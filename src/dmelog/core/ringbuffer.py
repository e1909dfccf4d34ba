from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class RingBuffer(Generic[T]):
    """
    Fixed-capacity FIFO used for trace lines and decoded samples.

    Appending to a full buffer evicts the oldest entry, so the most recently
    appended item is always retained and ``len()`` never exceeds capacity.
    """

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = int(capacity)
        self._data: list[Optional[T]] = [None] * self._capacity
        self._start = 0
        self._size = 0
        self._evicted = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def evicted(self) -> int:
        """Number of entries dropped from the front since the last clear."""
        return self._evicted

    def append(self, item: T) -> bool:
        """Append ``item``; return True when an older entry was evicted."""
        idx = (self._start + self._size) % self._capacity
        self._data[idx] = item
        if self._size < self._capacity:
            self._size += 1
            return False
        self._start = (self._start + 1) % self._capacity
        self._evicted += 1
        return True

    def extend(self, items: Iterable[T]) -> int:
        """Append ``items`` in order and return how many entries were evicted."""
        dropped = 0
        for item in items:
            if self.append(item):
                dropped += 1
        return dropped

    def clear(self) -> None:
        self._data = [None] * self._capacity
        self._start = 0
        self._size = 0
        self._evicted = 0

    def latest(self) -> Optional[T]:
        if self._size == 0:
            return None
        return self[-1]

    def snapshot(self) -> list[T]:
        """Copy of the logical contents, oldest first."""
        return list(self)

    def __len__(self) -> int:  # pragma: no cover - trivial
        return self._size

    def __getitem__(self, index: int) -> T:
        size = self._size
        if size == 0:
            raise IndexError("RingBuffer is empty")
        if index < 0:
            index += size
        if index < 0 or index >= size:
            raise IndexError("RingBuffer index out of range")
        item = self._data[(self._start + index) % self._capacity]
        assert item is not None
        return item

    def __iter__(self) -> Iterator[T]:
        for i in range(self._size):
            item = self._data[(self._start + i) % self._capacity]
            if item is not None:
                yield item
