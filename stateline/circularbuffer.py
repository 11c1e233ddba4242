"""Fixed-size buffer that drops its oldest element when full."""

from __future__ import annotations

from collections import deque
from typing import Generic, Iterator, TypeVar

T = TypeVar("T")


class CircularBuffer(Generic[T]):
    """A buffer that always holds ``size`` elements, initially ``fill``."""

    def __init__(self, size: int, fill: T = 0) -> None:
        if size < 0:
            raise ValueError(f"buffer size must be non-negative, got {size}")
        self._size = size
        self._items: deque[T] = deque((fill for _ in range(size)), maxlen=size)

    def append(self, value: T) -> None:
        """Add a value at the back, dropping the front one if over capacity."""
        self._items.append(value)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __len__(self) -> int:
        return self._size