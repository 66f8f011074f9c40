"""
Shared pipeline state: processed signatures, counters, recent results.

One instance is injected into the listener, the worker and the operator
controls. All access happens on the event loop thread.
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from mintwatch.analysis_engine.models import TokenAnalysis

DEFAULT_PROCESSED_SET_MAX = 100_000
RECENT_RESULTS = 10


class ProcessedSet:
    """
    Signatures already accepted by the listener.

    Bounded with FIFO eviction when max_size > 0; 0 means unbounded.
    """

    def __init__(self, max_size: int = DEFAULT_PROCESSED_SET_MAX) -> None:
        if max_size < 0:
            raise ValueError("max_size must be >= 0")
        self._max_size = max_size
        self._seen: set[str] = set()
        self._order: deque[str] = deque()

    def __contains__(self, signature: object) -> bool:
        return signature in self._seen

    def __len__(self) -> int:
        return len(self._seen)

    def add(self, signature: str) -> bool:
        """Record signature; False if it was already present."""
        if signature in self._seen:
            return False
        if self._max_size and len(self._seen) >= self._max_size and self._order:
            old = self._order.popleft()
            self._seen.discard(old)
        self._seen.add(signature)
        self._order.append(signature)
        return True

    def clear(self) -> None:
        self._seen.clear()
        self._order.clear()


@dataclass
class PipelineCounters:
    detected: int = 0
    duplicates: int = 0
    dropped: int = 0
    analyzed: int = 0
    failed: int = 0
    skipped_events: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "detected": self.detected,
            "duplicates": self.duplicates,
            "dropped": self.dropped,
            "analyzed": self.analyzed,
            "failed": self.failed,
            "skipped_events": self.skipped_events,
        }


@dataclass
class PipelineState:
    """Mutable state for status reporting and dedup."""

    processed_set_max: int = DEFAULT_PROCESSED_SET_MAX
    processed: ProcessedSet = field(init=False)
    counters: PipelineCounters = field(default_factory=PipelineCounters)
    recent_results: deque[TokenAnalysis] = field(
        default_factory=lambda: deque(maxlen=RECENT_RESULTS)
    )
    streaming: bool = True
    in_flight: str | None = None
    """Signature of the analysis currently running, if any."""
    started_at: float = field(default_factory=time.monotonic)
    last_error: str | None = None

    def __post_init__(self) -> None:
        self.processed = ProcessedSet(self.processed_set_max)

    def uptime_sec(self) -> float:
        return time.monotonic() - self.started_at

    def record_result(self, analysis: TokenAnalysis) -> None:
        self.recent_results.append(analysis)
        self.counters.analyzed += 1

    def toggle_streaming(self) -> bool:
        self.streaming = not self.streaming
        return self.streaming

    def reset(self) -> None:
        self.processed.clear()
        self.counters = PipelineCounters()
        self.recent_results.clear()
        self.streaming = True
        self.in_flight = None
        self.started_at = time.monotonic()
        self.last_error = None

    def snapshot(self) -> dict[str, Any]:
        return {
            "streaming": self.streaming,
            "in_flight": self.in_flight,
            "processed_signatures": len(self.processed),
            "uptime_sec": round(self.uptime_sec(), 1),
            "last_error": self.last_error,
            **self.counters.to_dict(),
        }
