"""Bounded, thread-safe snapshot history."""
import threading
from collections import deque

DEFAULT_CAPACITY = 1000


class HistoryBuffer:
    """FIFO buffer of snapshots; appending past capacity drops the oldest."""

    def __init__(self, capacity=DEFAULT_CAPACITY):
        self.capacity = capacity
        self._items = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def append(self, item):
        with self._lock:
            self._items.append(item)

    def latest(self):
        with self._lock:
            return self._items[-1] if self._items else None

    def recent(self, limit):
        """The most recent ``limit`` items, oldest first."""
        with self._lock:
            items = list(self._items)
        if limit <= 0:
            return []
        return items[-limit:]

    def clear(self):
        with self._lock:
            self._items.clear()

    def __len__(self):
        with self._lock:
            return len(self._items)
