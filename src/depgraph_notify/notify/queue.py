from __future__ import annotations

from collections.abc import Iterator
from typing import Generic, Protocol, TypeVar

from .base import NotificationPriority


class QueueEmptyError(LookupError):
    pass


class _Prioritized(Protocol):
    @property
    def priority(self) -> NotificationPriority: ...


T = TypeVar("T", bound=_Prioritized)


class PriorityQueue(Generic[T]):
    """
    Bounded, priority-ordered buffer of pending notifications.

    - FIFO within a priority class; higher classes always sit in front.
    - When full, every `low` entry is evicted before inserting.
    - If still full after that, the new entry goes in anyway (the queue may
      run over capacity rather than drop normal/high notifications).

    Not thread-safe: all mutation happens on one event loop.
    """

    def __init__(self, *, max_queue_size: int = 10) -> None:
        if int(max_queue_size) < 1:
            raise ValueError("max_queue_size must be >= 1")
        self.max_queue_size = int(max_queue_size)
        self._items: list[T] = []

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items))

    def insert(self, item: T) -> list[T]:
        """
        Insert `item` before the first entry with strictly lower priority.
        Returns the entries evicted to make room (possibly empty).
        """
        evicted: list[T] = []
        if len(self._items) >= self.max_queue_size:
            kept: list[T] = []
            for it in self._items:
                if NotificationPriority(it.priority) == NotificationPriority.low:
                    evicted.append(it)
                else:
                    kept.append(it)
            self._items = kept

        rank = NotificationPriority(item.priority).rank
        idx = len(self._items)
        for i, it in enumerate(self._items):
            if rank > NotificationPriority(it.priority).rank:
                idx = i
                break
        self._items.insert(idx, item)
        return evicted

    def dequeue_front(self) -> T:
        if not self._items:
            raise QueueEmptyError("dequeue from empty notification queue")
        return self._items.pop(0)

    def clear(self) -> list[T]:
        removed, self._items = self._items, []
        return removed
