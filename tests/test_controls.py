"""
Tests for the operator console commands.
"""

from __future__ import annotations

import asyncio
import io

from mintwatch.agent_worker import AnalysisQueue, PipelineState
from mintwatch.agent_worker.controls import HELP_TEXT, OperatorControls
from mintwatch.analysis_engine import CheckResult, Severity, build_analysis
from mintwatch.solana_listener.models import DetectionEvent
from mintwatch.solana_rpc.rate_limit import RequestScheduler

MINT = "7F1WzVNQ1Qpurqxxdyv3UrFQR3uoNepULVW9A4bAJ5nZ"


def make_controls(on_shutdown=None):
    state = PipelineState()
    queue = AnalysisQueue(4)
    controls = OperatorControls(state, queue, RequestScheduler(), on_shutdown=on_shutdown)
    return controls, state, queue


def test_toggle_streaming():
    controls, state, _ = make_controls()
    assert asyncio.run(controls.handle("s")) == "streaming paused"
    assert state.streaming is False
    assert asyncio.run(controls.handle("S\n")) == "streaming resumed"
    assert state.streaming is True


def test_status_reports_queue_and_credits():
    controls, state, queue = make_controls()
    queue.enqueue(DetectionEvent(signature="sig", slot=1))
    state.counters.dropped = 2
    status = controls.status()
    assert status["queue_size"] == 1
    assert status["queue_capacity"] == 4
    assert status["dropped"] == 2
    assert status["credits"]["credits_used"] == 0
    text = asyncio.run(controls.handle("q"))
    assert "queue: 1/4" in text
    assert "dropped: 2" in text


def test_recent_results():
    controls, state, _ = make_controls()
    assert asyncio.run(controls.handle("r")) == "no results yet"
    state.record_result(
        build_analysis(MINT, {"authorities": CheckResult(numeric_score=60, severity=Severity.HIGH)})
    )
    text = asyncio.run(controls.handle("r"))
    assert MINT in text
    assert "risk= 60" in text
    assert "high risk" in text


def test_shutdown_invokes_callback():
    called = []

    async def on_shutdown():
        called.append(True)

    controls, _, _ = make_controls(on_shutdown)
    assert asyncio.run(controls.handle("x")) == "shutting down"
    assert called == [True]
    assert controls.shutdown_requested.is_set()


def test_unknown_command():
    controls, _, _ = make_controls()
    assert asyncio.run(controls.handle("?")) is None


def test_console_loop_reads_until_eof():
    """An in-memory stream has no fileno; the loop falls back to executor reads."""
    controls, state, _ = make_controls()
    out = io.StringIO()
    asyncio.run(controls.console_loop(io.StringIO("s\nzz\n"), out))
    lines = out.getvalue().splitlines()
    assert lines[0] == HELP_TEXT
    assert lines[1] == "streaming paused"
    assert lines[2] == HELP_TEXT
    assert state.streaming is False
