"""
Analysis orchestrator: runs the enabled checks for one token under per-check
deadlines and hands the settled results to the scorer.

A check that misses its deadline becomes a skipped result and its task is
cancelled; whatever it produces later is discarded. A check that raises
becomes a failed result. Neither affects the other checks.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, fields
from typing import Awaitable, Callable

from mintwatch.analysis_engine.holders import check_holders
from mintwatch.analysis_engine.honeypot import check_honeypot
from mintwatch.analysis_engine.liquidity import check_liquidity
from mintwatch.analysis_engine.market_data import check_market_data
from mintwatch.analysis_engine.metadata_check import check_metadata
from mintwatch.analysis_engine.models import CheckResult, TokenAnalysis
from mintwatch.analysis_engine.onchain_checks import (
    check_authorities,
    check_basic_info,
    check_program_ownership,
)
from mintwatch.analysis_engine.scorer import build_analysis
from mintwatch.analysis_engine.social import check_social
from mintwatch.config.settings import Settings
from mintwatch.core.identity import TokenIdentity
from mintwatch.mintwatch_logging import bind_mint, get_logger
from mintwatch.solana_rpc.account_cache import AccountCache, MetadataCache
from mintwatch.solana_rpc.client import SolanaRpcClient
from mintwatch.solana_rpc.jupiter import JupiterClient
from mintwatch.solana_rpc.metadata import MetadataClient

logger = get_logger(__name__)

CheckFactory = Callable[[], Awaitable[CheckResult]]


@dataclass(frozen=True)
class CheckTimeouts:
    """Per-check deadlines in seconds."""

    basic_info: float = 5.0
    authorities: float = 5.0
    program_ownership: float = 5.0
    metadata: float = 5.0
    holders: float = 10.0
    liquidity: float = 10.0
    honeypot: float = 15.0
    market_data: float = 5.0
    social: float = 5.0

    def __post_init__(self) -> None:
        for f in fields(self):
            if getattr(self, f.name) <= 0:
                raise ValueError(f"{f.name} timeout must be > 0")

    def for_check(self, name: str) -> float:
        return getattr(self, name)


@dataclass(frozen=True)
class AnalysisOptions:
    include_metadata: bool = True
    include_holders: bool = False
    include_liquidity: bool = False
    include_honeypot: bool = True
    include_market_data: bool = False
    include_social: bool = False
    concurrent_checks: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "AnalysisOptions":
        return cls(
            include_metadata=settings.include_metadata,
            include_holders=settings.include_holders,
            include_liquidity=settings.include_liquidity,
            include_honeypot=settings.include_honeypot,
            include_market_data=settings.include_market_data,
            include_social=settings.include_social,
            concurrent_checks=settings.concurrent_checks,
        )


def _discard_late_result(task: asyncio.Task) -> None:
    if not task.cancelled():
        # retrieve so the loop does not report an unhandled exception
        task.exception()


async def run_guarded(name: str, factory: CheckFactory, timeout_sec: float) -> CheckResult:
    """Run one check under a deadline; never raises for check-level failures."""
    task = asyncio.ensure_future(factory())
    try:
        done, _ = await asyncio.wait({task}, timeout=timeout_sec)
    except asyncio.CancelledError:
        task.cancel()
        raise
    if not done:
        task.cancel()
        task.add_done_callback(_discard_late_result)
        logger.warning("check_timed_out", check=name, timeout_sec=timeout_sec)
        return CheckResult.timed_out(name, timeout_sec)
    if task.cancelled():
        return CheckResult.failed(name, asyncio.CancelledError("cancelled"))
    exc = task.exception()
    if exc is not None:
        logger.warning("check_failed", check=name, error=str(exc), error_type=type(exc).__name__)
        return CheckResult.failed(name, exc)
    return task.result()


class AnalysisOrchestrator:
    """
    Runs the check battery for one token.

    Collaborators are injected; metadata and jupiter are optional. Reads of
    the mint account and of the token metadata are shared by every check in
    one analysis. A check enabled in the options whose collaborator is
    missing is reported as a skipped (disabled) result.
    """

    def __init__(
        self,
        rpc: SolanaRpcClient,
        *,
        jupiter: JupiterClient | None = None,
        metadata: MetadataClient | None = None,
        timeouts: CheckTimeouts | None = None,
        default_options: AnalysisOptions | None = None,
    ) -> None:
        self._rpc = rpc
        self._jupiter = jupiter
        self._metadata = metadata
        self._timeouts = timeouts or CheckTimeouts()
        self._default_options = default_options or AnalysisOptions()

    def _plan(
        self,
        rpc: AccountCache,
        metadata: MetadataCache | None,
        mint: str,
        options: AnalysisOptions,
    ) -> dict[str, CheckFactory | None]:
        plan: dict[str, CheckFactory | None] = {
            "basic_info": lambda: check_basic_info(rpc, mint),
            "authorities": lambda: check_authorities(rpc, mint),
            "program_ownership": lambda: check_program_ownership(rpc, mint),
        }
        if options.include_metadata:
            plan["metadata"] = (
                (lambda: check_metadata(metadata, mint)) if metadata is not None else None
            )
        if options.include_holders:
            plan["holders"] = lambda: check_holders(rpc, mint)
        if options.include_liquidity:
            plan["liquidity"] = lambda: check_liquidity(rpc, mint)
        if options.include_honeypot:
            plan["honeypot"] = lambda: check_honeypot(rpc, self._jupiter, mint)
        if options.include_market_data:
            jupiter = self._jupiter
            plan["market_data"] = (lambda: check_market_data(jupiter, mint)) if jupiter else None
        if options.include_social:
            plan["social"] = (
                (lambda: check_social(metadata, mint)) if metadata is not None else None
            )
        return plan

    async def analyze(
        self,
        token: str | TokenIdentity,
        options: AnalysisOptions | None = None,
        *,
        signature: str | None = None,
    ) -> TokenAnalysis:
        """
        Validate token, run every enabled check and aggregate.

        Raises ValidationError for a malformed address; every other failure is
        folded into the corresponding CheckResult.
        """
        identity = token if isinstance(token, TokenIdentity) else TokenIdentity.parse(token)
        mint = identity.address
        options = options or self._default_options
        log = bind_mint(mint)
        started = time.monotonic()
        log.info("analysis_start", concurrent=options.concurrent_checks)

        metadata = MetadataCache(self._metadata) if self._metadata is not None else None
        plan = self._plan(AccountCache(self._rpc), metadata, mint, options)
        checks: dict[str, CheckResult] = {}
        runnable = {name: f for name, f in plan.items() if f is not None}
        for name, factory in plan.items():
            if factory is None:
                checks[name] = CheckResult.disabled(name)

        if options.concurrent_checks:
            results = await asyncio.gather(
                *(
                    run_guarded(name, factory, self._timeouts.for_check(name))
                    for name, factory in runnable.items()
                )
            )
            checks.update(zip(runnable.keys(), results))
        else:
            for name, factory in runnable.items():
                checks[name] = await run_guarded(name, factory, self._timeouts.for_check(name))

        ordered = {name: checks[name] for name in plan}
        analysis = build_analysis(mint, ordered, signature=signature)
        log.info(
            "analysis_complete",
            risk_score=analysis.risk_score,
            safety_level=analysis.safety_level.value,
            skipped=[n for n, r in ordered.items() if r.skipped],
            duration_ms=round((time.monotonic() - started) * 1000),
        )
        return analysis
