"""
Tests for DetectionListener message handling: dedup, pause, failed transactions,
classification and backpressure on a full queue.
"""

from __future__ import annotations

import asyncio
import json

import pytest

from mintwatch.agent_worker import AnalysisQueue, PipelineState
from mintwatch.solana_listener import listener as listener_module
from mintwatch.solana_listener.listener import DetectionListener, ListenerConfig, Outcome

PROGRAM_ID = "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P"
CREATE_LOGS = [
    f"Program {PROGRAM_ID} invoke [1]",
    "Program log: Instruction: Create",
    "Program log: Instruction: InitializeMint2",
]


def notification(signature: str, logs=None, err=None, slot: int = 250_000_000) -> dict:
    return {
        "jsonrpc": "2.0",
        "method": "logsNotification",
        "params": {
            "subscription": 7,
            "result": {
                "context": {"slot": slot},
                "value": {"signature": signature, "err": err, "logs": CREATE_LOGS if logs is None else logs},
            },
        },
    }


def make_listener(capacity: int = 5):
    state = PipelineState(processed_set_max=100)
    queue = AnalysisQueue(capacity)
    config = ListenerConfig(rpc_ws_url="wss://example.invalid", program_id=PROGRAM_ID)
    return DetectionListener(config, queue, state), queue, state


def test_subscribe_request_mentions_program():
    listener, _, _ = make_listener()
    req = listener.subscribe_request()
    assert req["method"] == "logsSubscribe"
    assert req["params"][0] == {"mentions": [PROGRAM_ID]}
    assert req["params"][1] == {"commitment": "confirmed"}


def test_creation_is_enqueued():
    """A new creation becomes a DetectionEvent at the back of the queue."""
    listener, queue, state = make_listener()
    outcome = listener.handle_message(json.dumps(notification("sig1")))
    assert outcome is Outcome.ENQUEUED
    assert len(queue) == 1
    event = queue.peek()
    assert event.signature == "sig1"
    assert event.slot == 250_000_000
    assert event.raw_log_lines == tuple(CREATE_LOGS)
    assert state.counters.detected == 1
    assert "sig1" in state.processed


def test_duplicate_signature_enqueued_once():
    listener, queue, state = make_listener()
    assert listener.handle_message(notification("sig1")) is Outcome.ENQUEUED
    assert listener.handle_message(notification("sig1")) is Outcome.DUPLICATE
    assert len(queue) == 1
    assert state.counters.duplicates == 1
    assert state.counters.detected == 1


def test_failed_transaction_ignored():
    listener, queue, state = make_listener()
    outcome = listener.handle_message(notification("sig1", err={"InstructionError": [0, "Custom"]}))
    assert outcome is Outcome.FAILED_TX
    assert len(queue) == 0
    assert "sig1" not in state.processed


def test_non_creation_logs_not_enqueued():
    listener, queue, state = make_listener()
    logs = ["Program log: Instruction: Buy", "Program log: Instruction: Transfer"]
    assert listener.handle_message(notification("sig1", logs=logs)) is Outcome.NOT_CREATION
    assert len(queue) == 0
    assert state.counters.detected == 0


def test_paused_listener_drops_notifications():
    """While streaming is paused nothing is marked processed, so it can be seen again later."""
    listener, queue, state = make_listener()
    state.toggle_streaming()
    assert listener.handle_message(notification("sig1")) is Outcome.PAUSED
    assert len(queue) == 0
    state.toggle_streaming()
    assert listener.handle_message(notification("sig1")) is Outcome.ENQUEUED


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        b"\xff\xfe",
        json.dumps([1, 2, 3]),
        json.dumps({"jsonrpc": "2.0", "id": 1, "result": 42}),
        json.dumps({"method": "logsNotification", "params": {"result": {"value": {}}}}),
    ],
)
def test_irrelevant_messages_ignored(raw):
    listener, queue, _ = make_listener()
    assert listener.handle_message(raw) is Outcome.IGNORED
    assert len(queue) == 0


def test_full_queue_drops_and_counts():
    """With the queue at capacity C, the (C+1)-th detection is dropped and counted."""
    capacity = 3
    listener, queue, state = make_listener(capacity)
    for i in range(capacity):
        assert listener.handle_message(notification(f"sig{i}")) is Outcome.ENQUEUED
    assert listener.handle_message(notification("overflow")) is Outcome.DROPPED
    assert len(queue) == capacity
    assert state.counters.dropped == 1
    assert state.counters.detected == capacity + 1
    assert [queue.dequeue().signature for _ in range(capacity)] == ["sig0", "sig1", "sig2"]


def test_empty_ws_url_rejected():
    with pytest.raises(ValueError):
        DetectionListener(
            ListenerConfig(rpc_ws_url="  ", program_id=PROGRAM_ID),
            AnalysisQueue(1),
            PipelineState(),
        )


class FakeWebSocket:
    """Acks the subscription, replays notifications, then idles until closed."""

    def __init__(self, notifications: list[dict]) -> None:
        self.sent: list[dict] = []
        self._incoming = [json.dumps(n) for n in notifications]
        self._closed = asyncio.Event()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        self._closed.set()

    async def send(self, raw: str) -> None:
        self.sent.append(json.loads(raw))

    async def recv(self) -> str:
        request = self.sent[-1]
        return json.dumps({"jsonrpc": "2.0", "id": request["id"], "result": 42})

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for raw in self._incoming:
            yield raw
        await self._closed.wait()

    async def close(self) -> None:
        self._closed.set()


def test_run_subscribes_enqueues_and_unsubscribes(monkeypatch):
    ws = FakeWebSocket([notification("sig1"), notification("sig1"), notification("sig2")])
    monkeypatch.setattr(listener_module.websockets, "connect", lambda *a, **kw: ws)

    async def scenario():
        listener, queue, state = make_listener()
        task = asyncio.create_task(listener.run())
        for _ in range(100):
            if len(queue) == 2:
                break
            await asyncio.sleep(0.01)
        assert listener.subscription_id == 42
        await listener.stop()
        await asyncio.wait_for(task, timeout=2)
        return queue, state

    queue, state = asyncio.run(scenario())
    assert len(queue) == 2
    assert state.counters.duplicates == 1
    methods = [m["method"] for m in ws.sent]
    assert methods == ["logsSubscribe", "logsUnsubscribe"]
    assert ws.sent[1]["params"] == [42]
