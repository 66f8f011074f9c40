"""
Main entrypoint: token-creation monitor or one-off analysis.

  python main.py monitor            listener + worker + operator console
  python main.py analyze <MINT>     analyze one mint and print the result as JSON

Env: SOLANA_RPC_HTTP, SOLANA_RPC_WSS, PUMP_PROGRAM_ID, MAX_QUEUE_SIZE,
MIN_ANALYSIS_AGE_SEC, INCLUDE_* toggles, LOG_LEVEL, LOG_FORMAT, etc. (see .env.example).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import signal
import sys

from mintwatch.mintwatch_logging import configure_structlog, get_logger

logger = get_logger("main")


def _build_clients(settings):
    from mintwatch.solana_rpc import JupiterClient, MetadataClient, RequestScheduler, SolanaRpcClient

    scheduler = RequestScheduler(
        requests_per_second=settings.max_requests_per_second,
        max_concurrent=settings.max_concurrent_requests,
        max_total_credits=settings.max_total_credits,
    )
    rpc = SolanaRpcClient(
        settings.rpc_http_url,
        scheduler,
        timeout_sec=settings.rpc_timeout_sec,
        retry_attempts=settings.rpc_retry_attempts,
        retry_delay_sec=settings.rpc_retry_delay_sec,
    )
    jupiter = JupiterClient(
        scheduler,
        quote_url=settings.jupiter_quote_url,
        price_url=settings.jupiter_price_url,
    )
    metadata = MetadataClient(rpc)
    return scheduler, rpc, jupiter, metadata


async def _close_clients(*clients) -> None:
    for client in clients:
        await client.aclose()


async def run_analyze(mint: str, args: argparse.Namespace) -> int:
    from mintwatch.analysis_engine import AnalysisOptions, AnalysisOrchestrator
    from mintwatch.config import get_settings
    from mintwatch.core import ValidationError

    settings = get_settings()
    scheduler, rpc, jupiter, metadata = _build_clients(settings)
    options = AnalysisOptions.from_settings(settings)
    if args.full:
        options = AnalysisOptions(
            include_metadata=True,
            include_holders=True,
            include_liquidity=True,
            include_honeypot=True,
            include_market_data=True,
            include_social=True,
            concurrent_checks=options.concurrent_checks,
        )
    orchestrator = AnalysisOrchestrator(rpc, jupiter=jupiter, metadata=metadata, default_options=options)
    try:
        analysis = await orchestrator.analyze(mint)
    except ValidationError as e:
        logger.error("main_invalid_mint", mint=mint, error=str(e))
        print(str(e), file=sys.stderr)
        return 2
    finally:
        await _close_clients(metadata, jupiter, rpc)
    print(json.dumps(analysis.to_dict(), indent=2, default=str))
    logger.info("main_analyze_done", credits=scheduler.usage_stats())
    return 0


async def run_monitor(args: argparse.Namespace) -> int:
    from mintwatch.agent_worker import AnalysisQueue, PipelineState
    from mintwatch.agent_worker.controls import OperatorControls
    from mintwatch.agent_worker.worker import AnalysisWorker, WorkerConfig
    from mintwatch.analysis_engine import AnalysisOptions, AnalysisOrchestrator
    from mintwatch.config import get_settings
    from mintwatch.config.env import mask_url
    from mintwatch.solana_listener.listener import DetectionListener, ListenerConfig

    settings = get_settings()
    scheduler, rpc, jupiter, metadata = _build_clients(settings)
    state = PipelineState(processed_set_max=settings.processed_set_max)
    queue = AnalysisQueue(settings.max_queue_size)
    orchestrator = AnalysisOrchestrator(
        rpc,
        jupiter=jupiter,
        metadata=metadata,
        default_options=AnalysisOptions.from_settings(settings),
    )
    listener = DetectionListener(ListenerConfig.from_settings(settings), queue, state)
    worker = AnalysisWorker(queue, state, rpc, orchestrator, config=WorkerConfig.from_settings(settings))

    stopping = asyncio.Event()

    async def shutdown() -> None:
        if stopping.is_set():
            return
        stopping.set()
        logger.info("main_shutdown_start")
        worker.stop()
        await listener.stop()

    controls = OperatorControls(state, queue, scheduler, on_shutdown=shutdown)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, lambda: asyncio.ensure_future(shutdown()))
        except (NotImplementedError, RuntimeError):
            pass

    logger.info(
        "main_monitor_starting",
        rpc_http=mask_url(settings.rpc_http_url),
        rpc_wss=mask_url(settings.rpc_wss_url),
        program_id=settings.program_id,
        queue_capacity=settings.max_queue_size,
        min_age_sec=settings.min_analysis_age_sec,
    )
    listener_task = asyncio.create_task(listener.run(), name="listener")
    worker_task = asyncio.create_task(worker.run(), name="worker")
    console_task = None
    if not args.no_console and sys.stdin.isatty():
        console_task = asyncio.create_task(controls.console_loop(), name="console")

    try:
        await asyncio.gather(listener_task, worker_task)
    finally:
        if console_task is not None:
            console_task.cancel()
        await _close_clients(metadata, jupiter, rpc)
        logger.info("main_monitor_stopped", **controls.status())
    return 0


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Detect new Solana token mints and score their risk")
    sub = ap.add_subparsers(dest="command", required=True)

    mon = sub.add_parser("monitor", help="Listen for token creations and analyze them")
    mon.add_argument("--no-console", action="store_true", help="Disable the stdin operator console")

    one = sub.add_parser("analyze", help="Analyze a single mint and print JSON")
    one.add_argument("mint", help="Base58 mint address")
    one.add_argument("--full", action="store_true", help="Enable every optional check")

    args = ap.parse_args(argv)

    from mintwatch.config import get_settings

    settings = get_settings()
    configure_structlog(settings.log_level, settings.log_format)

    if args.command == "analyze":
        return asyncio.run(run_analyze(args.mint, args))
    try:
        return asyncio.run(run_monitor(args))
    except KeyboardInterrupt:
        logger.info("main_interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
