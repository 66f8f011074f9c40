"""
Bounded FIFO queue of detection events.

Never blocks and never evicts: enqueue on a full queue returns False and the
caller counts the drop. Enqueue sets an asyncio.Event so the worker loop can
wake early instead of waiting for its next interval.
"""

from __future__ import annotations

import asyncio
from collections import deque

from mintwatch.solana_listener.models import DetectionEvent


class AnalysisQueue:
    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._capacity = capacity
        self._items: deque[DetectionEvent] = deque()
        self._not_empty = asyncio.Event()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def not_empty(self) -> asyncio.Event:
        return self._not_empty

    def __len__(self) -> int:
        return len(self._items)

    def full(self) -> bool:
        return len(self._items) >= self._capacity

    def empty(self) -> bool:
        return not self._items

    def enqueue(self, event: DetectionEvent) -> bool:
        if self.full():
            return False
        self._items.append(event)
        self._not_empty.set()
        return True

    def peek(self) -> DetectionEvent | None:
        return self._items[0] if self._items else None

    def snapshot(self) -> list[DetectionEvent]:
        """Queued events, oldest first."""
        return list(self._items)

    def dequeue(self) -> DetectionEvent | None:
        if not self._items:
            return None
        event = self._items.popleft()
        if not self._items:
            self._not_empty.clear()
        return event

    def clear(self) -> None:
        self._items.clear()
        self._not_empty.clear()
