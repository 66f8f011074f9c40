"""
Single-flight analysis worker: queue -> transaction -> mint -> orchestrator -> observers.

At most one analysis runs at a time. Each scheduling cycle (tick) looks at the
oldest queued detection and starts it only once it is at least min_age_sec
old, so the chain has time to make the transaction and the new mint
queryable. Failures are logged and counted; the loop keeps running.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable

from mintwatch.agent_worker.analysis_queue import AnalysisQueue
from mintwatch.agent_worker.state import PipelineState
from mintwatch.analysis_engine.models import TokenAnalysis
from mintwatch.analysis_engine.orchestrator import AnalysisOrchestrator
from mintwatch.config.settings import Settings
from mintwatch.core.exceptions import ValidationError
from mintwatch.mintwatch_logging import get_logger, short
from mintwatch.solana_listener.models import DetectionEvent
from mintwatch.solana_listener.parser import extract_mint
from mintwatch.solana_rpc.client import SolanaRpcClient

logger = get_logger(__name__)

# Observer receives each finished analysis; may be sync or async.
AnalysisObserver = Callable[[TokenAnalysis], Any]

DEFAULT_MIN_AGE_SEC = 5.0
DEFAULT_INTERVAL_SEC = 3.0
DEFAULT_SHUTDOWN_TIMEOUT_SEC = 30.0


@dataclass
class WorkerConfig:
    """Configuration for the analysis worker."""

    min_age_sec: float = DEFAULT_MIN_AGE_SEC
    interval_sec: float = DEFAULT_INTERVAL_SEC
    analysis_log_path: str | Path | None = None
    shutdown_timeout_sec: float = DEFAULT_SHUTDOWN_TIMEOUT_SEC

    @classmethod
    def from_settings(cls, settings: Settings) -> "WorkerConfig":
        return cls(
            min_age_sec=settings.min_analysis_age_sec,
            interval_sec=settings.worker_interval_sec,
            analysis_log_path=settings.analysis_log_path,
        )


def append_jsonl(path: str | Path, analysis: TokenAnalysis) -> None:
    """Append one analysis as a JSON line."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with open(p, "a", encoding="utf-8") as f:
        f.write(json.dumps(analysis.to_dict(), default=str) + "\n")


class AnalysisWorker:
    def __init__(
        self,
        queue: AnalysisQueue,
        state: PipelineState,
        rpc: SolanaRpcClient,
        orchestrator: AnalysisOrchestrator,
        *,
        config: WorkerConfig | None = None,
        observers: Iterable[AnalysisObserver] = (),
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._queue = queue
        self._state = state
        self._rpc = rpc
        self._orchestrator = orchestrator
        self._config = config or WorkerConfig()
        self._observers: list[AnalysisObserver] = list(observers)
        self._clock = clock
        self._in_flight = False
        self._task: asyncio.Task[None] | None = None
        self._stop = asyncio.Event()
        self._wake = asyncio.Event()

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def add_observer(self, observer: AnalysisObserver) -> None:
        self._observers.append(observer)

    def tick(self) -> asyncio.Task[None] | None:
        """
        One scheduling cycle. Returns the started analysis task, or None when
        an analysis is already running, the queue is empty, or the oldest
        event is younger than min_age_sec (it then stays at the front).
        """
        if self._in_flight:
            return None
        head = self._queue.peek()
        if head is None:
            return None
        if self._clock() - head.detected_at < self._config.min_age_sec:
            return None
        event = self._queue.dequeue()
        if event is None:
            return None
        self._in_flight = True
        self._state.in_flight = event.signature
        self._task = asyncio.create_task(self._process(event))
        return self._task

    async def _process(self, event: DetectionEvent) -> None:
        started = self._clock()
        try:
            await self.analyze_event(event)
        except Exception as e:
            self._state.counters.failed += 1
            self._state.last_error = str(e)
            logger.exception("worker_analysis_failed", signature=short(event.signature), error=str(e))
        finally:
            self._in_flight = False
            self._state.in_flight = None
            self._wake.set()
            logger.debug(
                "worker_analysis_finished",
                signature=short(event.signature),
                duration_ms=round((self._clock() - started) * 1000),
            )

    async def analyze_event(self, event: DetectionEvent) -> TokenAnalysis | None:
        """Resolve the created mint and analyze it; None when the event is skipped."""
        tx = await self._rpc.get_transaction(event.signature)
        if tx is None:
            self._skip(event, "transaction_not_found")
            return None
        mint = extract_mint(tx)
        if mint is None:
            self._skip(event, "mint_not_found")
            return None
        try:
            analysis = await self._orchestrator.analyze(mint, signature=event.signature)
        except ValidationError as e:
            self._skip(event, "invalid_mint", mint=mint, error=str(e))
            return None
        await self.deliver(analysis)
        return analysis

    def _skip(self, event: DetectionEvent, reason: str, **fields: Any) -> None:
        self._state.counters.skipped_events += 1
        logger.info("worker_event_skipped", signature=short(event.signature), reason=reason, **fields)

    async def deliver(self, analysis: TokenAnalysis) -> None:
        self._state.record_result(analysis)
        logger.info(
            "worker_token_analyzed",
            mint=analysis.token,
            signature=short(analysis.signature),
            risk_score=analysis.risk_score,
            safety_level=analysis.safety_level.value,
        )
        if self._config.analysis_log_path:
            try:
                append_jsonl(self._config.analysis_log_path, analysis)
            except OSError as e:
                logger.warning("worker_analysis_log_failed", path=str(self._config.analysis_log_path), error=str(e))
        for observer in self._observers:
            try:
                result = observer(analysis)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning("worker_observer_failed", observer=repr(observer), error=str(e))

    def _next_delay(self) -> float:
        interval = self._config.interval_sec
        if self._in_flight:
            return interval
        head = self._queue.peek()
        if head is None:
            return interval
        remaining = self._config.min_age_sec - (self._clock() - head.detected_at)
        return max(0.0, min(interval, remaining))

    async def _sleep(self, delay: float) -> None:
        waiters = {asyncio.ensure_future(self._wake.wait())}
        if self._queue.empty():
            waiters.add(asyncio.ensure_future(self._queue.not_empty.wait()))
        try:
            await asyncio.wait(waiters, timeout=delay, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()
        self._wake.clear()

    async def run(self) -> None:
        """Loop tick() until stop(); lets an in-flight analysis finish before returning."""
        logger.info(
            "worker_started",
            min_age_sec=self._config.min_age_sec,
            interval_sec=self._config.interval_sec,
            queue_capacity=self._queue.capacity,
        )
        while not self._stop.is_set():
            try:
                self.tick()
            except Exception as e:
                logger.exception("worker_tick_error", error=str(e))
            await self._sleep(self._next_delay())
        await self._finish_in_flight()
        logger.info("worker_stopped", queue_size=len(self._queue), **self._state.counters.to_dict())

    async def _finish_in_flight(self) -> None:
        task = self._task
        if task is None or task.done():
            return
        done, _ = await asyncio.wait({task}, timeout=self._config.shutdown_timeout_sec)
        if not done:
            logger.warning("worker_shutdown_cancel_in_flight", signature=short(self._state.in_flight))
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    def stop(self) -> None:
        self._stop.set()
        self._wake.set()
