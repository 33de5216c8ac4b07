"""Bounded FIFO log — a fixed-capacity ring buffer safe for concurrent writers.

Appends and trims happen under one lock, so the capacity bound holds no
matter how many coroutines or threads write at once. Reads hand back an
independent list; callers never see the live buffer.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Generic, TypeVar

T = TypeVar("T")


class BoundedLog(Generic[T]):
    """Append-only collection that evicts the oldest item once full."""

    def __init__(self, capacity: int = 100) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._items: deque[T] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, item: T) -> T:
        with self._lock:
            self._items.append(item)
        return item

    def snapshot(self) -> list[T]:
        """Copy of every retained item, oldest first."""
        with self._lock:
            return list(self._items)

    def recent(self, limit: int) -> list[T]:
        """Up to ``limit`` items, most recent first."""
        if limit <= 0:
            return []
        with self._lock:
            items = list(self._items)
        return items[::-1][:limit]

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __repr__(self) -> str:
        return f"BoundedLog(size={len(self)}, capacity={self._capacity})"
