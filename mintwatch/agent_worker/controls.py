"""
Operator controls for the running monitor.

Single-key commands read from stdin:
  s  toggle streaming (paused listener drops notifications)
  q  status: queue depth/capacity, in-flight analysis, counters, credits, uptime
  r  last 10 results
  x  graceful shutdown
"""

from __future__ import annotations

import asyncio
import sys
from typing import Any, Awaitable, Callable, TextIO

from mintwatch.agent_worker.analysis_queue import AnalysisQueue
from mintwatch.agent_worker.state import PipelineState
from mintwatch.mintwatch_logging import get_logger
from mintwatch.solana_rpc.rate_limit import RequestScheduler

logger = get_logger(__name__)

HELP_TEXT = "commands: [s] toggle streaming  [q] status  [r] recent results  [x] shutdown"


def _format_uptime(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    return f"{hours:d}h{minutes:02d}m{secs:02d}s"


class OperatorControls:
    def __init__(
        self,
        state: PipelineState,
        queue: AnalysisQueue,
        scheduler: RequestScheduler,
        *,
        on_shutdown: Callable[[], Awaitable[None] | None] | None = None,
    ) -> None:
        self._state = state
        self._queue = queue
        self._scheduler = scheduler
        self._on_shutdown = on_shutdown
        self._shutdown_requested = asyncio.Event()

    @property
    def shutdown_requested(self) -> asyncio.Event:
        return self._shutdown_requested

    def status(self) -> dict[str, Any]:
        return {
            **self._state.snapshot(),
            "queue_size": len(self._queue),
            "queue_capacity": self._queue.capacity,
            "credits": self._scheduler.usage_stats(),
        }

    def status_text(self) -> str:
        s = self.status()
        credits = s["credits"]
        return "\n".join(
            [
                f"streaming: {'on' if s['streaming'] else 'paused'}",
                f"queue: {s['queue_size']}/{s['queue_capacity']}",
                f"in flight: {s['in_flight'] or '-'}",
                (
                    f"detected: {s['detected']}  dropped: {s['dropped']}  duplicates: {s['duplicates']}  "
                    f"analyzed: {s['analyzed']}  failed: {s['failed']}  skipped: {s['skipped_events']}"
                ),
                (
                    f"credits: {credits['credits_used']}/{credits['max_credits']} "
                    f"({credits['usage_percentage']:.2f}%)"
                ),
                f"uptime: {_format_uptime(s['uptime_sec'])}",
            ]
        )

    def recent_text(self) -> str:
        if not self._state.recent_results:
            return "no results yet"
        lines = []
        for analysis in reversed(self._state.recent_results):
            lines.append(
                f"{analysis.timestamp:%H:%M:%S}  {analysis.token}  "
                f"risk={analysis.risk_score:3d}  {analysis.safety_level.value}"
            )
        return "\n".join(lines)

    async def handle(self, command: str) -> str | None:
        """Apply one command; returns text for the operator, None for unknown input."""
        key = command.strip().lower()[:1]
        if key == "s":
            streaming = self._state.toggle_streaming()
            logger.info("operator_toggle_streaming", streaming=streaming)
            return "streaming resumed" if streaming else "streaming paused"
        if key == "q":
            return self.status_text()
        if key == "r":
            return self.recent_text()
        if key == "x":
            logger.info("operator_shutdown_requested")
            self._shutdown_requested.set()
            if self._on_shutdown is not None:
                result = self._on_shutdown()
                if result is not None:
                    await result
            return "shutting down"
        return None

    async def console_loop(self, stream: TextIO | None = None, out: TextIO | None = None) -> None:
        """Read commands line by line until shutdown or EOF."""
        stream = stream or sys.stdin
        out = out or sys.stdout
        loop = asyncio.get_running_loop()
        lines: asyncio.Queue[str] = asyncio.Queue()
        fd: int | None = None
        try:
            fd = stream.fileno()
            loop.add_reader(fd, lambda: lines.put_nowait(stream.readline()))
        except (NotImplementedError, OSError, ValueError, AttributeError):
            # no reader support (e.g. Windows proactor loop, in-memory stream)
            fd = None
        print(HELP_TEXT, file=out, flush=True)
        try:
            while not self._shutdown_requested.is_set():
                if fd is not None:
                    line = await lines.get()
                else:
                    line = await loop.run_in_executor(None, stream.readline)
                if not line:
                    logger.info("operator_console_eof")
                    return
                reply = await self.handle(line)
                print(reply if reply is not None else HELP_TEXT, file=out, flush=True)
        finally:
            if fd is not None:
                loop.remove_reader(fd)
