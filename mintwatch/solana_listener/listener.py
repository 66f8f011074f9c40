"""
Real-time token-creation detection: WebSocket logsSubscribe -> classify -> queue.

Connects to the Solana WebSocket endpoint, subscribes to logs mentioning the
launch program, and turns each creation-looking, successful, not-yet-seen
notification into a DetectionEvent on the bounded analysis queue.

Backpressure: a full queue drops the event and counts it; the listener never
blocks. Fault tolerance: auto-reconnect with exponential backoff; the set of
processed signatures survives reconnects.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

import websockets
from websockets.exceptions import ConnectionClosed

from mintwatch.agent_worker.analysis_queue import AnalysisQueue
from mintwatch.agent_worker.state import PipelineState
from mintwatch.config.env import mask_url
from mintwatch.config.settings import Settings
from mintwatch.mintwatch_logging import get_logger, short
from mintwatch.solana_listener.classifier import is_token_creation
from mintwatch.solana_listener.models import DetectionEvent, LogNotification

logger = get_logger(__name__)

DEFAULT_WS_PING_INTERVAL = 30.0
DEFAULT_WS_PING_TIMEOUT = 10.0
DEFAULT_RECONNECT_MIN_SEC = 1.0
DEFAULT_RECONNECT_MAX_SEC = 60.0
_WS_CLOSE_TIMEOUT = 5.0
_SUBSCRIBE_ACK_TIMEOUT = 10.0


@dataclass
class ListenerConfig:
    """Config for the logs-stream listener."""

    rpc_ws_url: str
    program_id: str
    commitment: str = "confirmed"
    reconnect_min_sec: float = DEFAULT_RECONNECT_MIN_SEC
    reconnect_max_sec: float = DEFAULT_RECONNECT_MAX_SEC
    ws_ping_interval: float | None = DEFAULT_WS_PING_INTERVAL
    ws_ping_timeout: float | None = DEFAULT_WS_PING_TIMEOUT

    @classmethod
    def from_settings(cls, settings: Settings) -> "ListenerConfig":
        return cls(
            rpc_ws_url=settings.rpc_wss_url,
            program_id=settings.program_id,
            reconnect_min_sec=settings.reconnect_min_sec,
            reconnect_max_sec=settings.reconnect_max_sec,
        )


class Outcome(str, Enum):
    """What handle_message did with one websocket message."""

    IGNORED = "ignored"
    PAUSED = "paused"
    FAILED_TX = "failed_tx"
    DUPLICATE = "duplicate"
    NOT_CREATION = "not_creation"
    ENQUEUED = "enqueued"
    DROPPED = "dropped"


class DetectionListener:
    """
    Logs-stream listener for newly created mints.

    run() connects, subscribes and processes notifications until stop().
    handle_message() holds all filtering logic and is usable without a socket.
    """

    def __init__(
        self,
        config: ListenerConfig,
        queue: AnalysisQueue,
        state: PipelineState,
    ) -> None:
        if not config.rpc_ws_url.strip():
            raise ValueError("rpc_ws_url must be non-empty")
        self._config = config
        self._queue = queue
        self._state = state
        self._stop = asyncio.Event()
        self._ws: Any = None
        self._subscription_id: int | None = None
        self._next_rpc_id = 0

    @property
    def subscription_id(self) -> int | None:
        return self._subscription_id

    def _next_id(self) -> int:
        self._next_rpc_id += 1
        return self._next_rpc_id

    def subscribe_request(self) -> dict[str, Any]:
        return {
            "jsonrpc": "2.0",
            "id": self._next_id(),
            "method": "logsSubscribe",
            "params": [
                {"mentions": [self._config.program_id]},
                {"commitment": self._config.commitment},
            ],
        }

    def handle_message(self, raw: str | bytes | dict[str, Any]) -> Outcome:
        """Classify one raw message and enqueue a DetectionEvent when it is a new creation."""
        if isinstance(raw, dict):
            msg = raw
        else:
            try:
                msg = json.loads(raw)
            except (json.JSONDecodeError, UnicodeDecodeError):
                return Outcome.IGNORED
        if not isinstance(msg, dict):
            return Outcome.IGNORED
        notification = LogNotification.from_message(msg)
        if notification is None:
            return Outcome.IGNORED
        if not self._state.streaming:
            return Outcome.PAUSED
        if notification.err is not None:
            return Outcome.FAILED_TX
        if notification.signature in self._state.processed:
            self._state.counters.duplicates += 1
            return Outcome.DUPLICATE
        if not is_token_creation(notification.logs):
            return Outcome.NOT_CREATION

        self._state.processed.add(notification.signature)
        self._state.counters.detected += 1
        event = DetectionEvent.from_notification(notification)
        if not self._queue.enqueue(event):
            self._state.counters.dropped += 1
            logger.warning(
                "listener_queue_full_dropped",
                signature=short(event.signature),
                queue_size=len(self._queue),
                capacity=self._queue.capacity,
                dropped=self._state.counters.dropped,
            )
            return Outcome.DROPPED
        logger.info(
            "token_creation_detected",
            signature=short(event.signature),
            slot=event.slot,
            queue_size=len(self._queue),
        )
        return Outcome.ENQUEUED

    async def run(self) -> None:
        """
        Run the listener loop: connect, subscribe, process notifications, reconnect on failure.
        Exits when stop() is called.
        """
        backoff = self._config.reconnect_min_sec
        run_id = 0
        while not self._stop.is_set():
            run_id += 1
            try:
                logger.info("listener_connecting", run_id=run_id, url=mask_url(self._config.rpc_ws_url))
                async with websockets.connect(
                    self._config.rpc_ws_url,
                    ping_interval=self._config.ws_ping_interval,
                    ping_timeout=self._config.ws_ping_timeout,
                    close_timeout=_WS_CLOSE_TIMEOUT,
                ) as ws:
                    self._ws = ws
                    await self._subscribe(ws)
                    backoff = self._config.reconnect_min_sec
                    await self._receive_loop(ws)
            except asyncio.CancelledError:
                break
            except ConnectionClosed as e:
                logger.warning(
                    "listener_disconnected",
                    run_id=run_id,
                    code=getattr(e, "code", None),
                    reason=getattr(e, "reason", None),
                )
            except Exception as e:
                self._state.last_error = str(e)
                logger.exception("listener_error", run_id=run_id, error=str(e))
            finally:
                self._ws = None
                self._subscription_id = None

            if self._stop.is_set():
                break
            logger.info("listener_reconnect", run_id=run_id, backoff_sec=round(backoff, 1))
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=backoff)
            except asyncio.TimeoutError:
                pass
            backoff = min(backoff * 2, self._config.reconnect_max_sec)
        logger.info("listener_stopped", run_id=run_id, **self._state.counters.to_dict())

    async def stop(self) -> None:
        """Signal the loop to exit and close the current connection."""
        self._stop.set()
        ws = self._ws
        if ws is None:
            return
        if self._subscription_id is not None:
            try:
                await ws.send(
                    json.dumps(
                        {
                            "jsonrpc": "2.0",
                            "id": self._next_id(),
                            "method": "logsUnsubscribe",
                            "params": [self._subscription_id],
                        }
                    )
                )
            except ConnectionClosed:
                pass
        await ws.close()

    async def _subscribe(self, ws: Any) -> None:
        request = self.subscribe_request()
        await ws.send(json.dumps(request))
        # The ack normally arrives first; notifications seen before it are handled too.
        deadline = asyncio.get_running_loop().time() + _SUBSCRIBE_ACK_TIMEOUT
        while self._subscription_id is None:
            remaining = deadline - asyncio.get_running_loop().time()
            if remaining <= 0:
                raise TimeoutError("logsSubscribe not acknowledged")
            raw = await asyncio.wait_for(ws.recv(), timeout=remaining)
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                continue
            if msg.get("id") == request["id"]:
                if msg.get("error"):
                    raise RuntimeError(f"logsSubscribe rejected: {msg['error']}")
                self._subscription_id = msg.get("result")
            else:
                self.handle_message(msg)
        logger.info(
            "listener_subscribed",
            subscription_id=self._subscription_id,
            program_id=self._config.program_id,
        )

    async def _receive_loop(self, ws: Any) -> None:
        async for raw in ws:
            if self._stop.is_set():
                return
            self.handle_message(raw)
