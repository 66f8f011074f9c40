"""
Honeypot simulation check.

Four weighted sub-tests: authority control, program ownership, supply
mechanics and a trading simulation (buy SOL->token then sell token->SOL via
swap quotes). A sub-test whose collaborator cannot answer is left out and
lowers the confidence; the final score is pulled toward neutral in
proportion to the missing confidence. A blocked sell is decisive.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from mintwatch.analysis_engine.models import (
    NEUTRAL_SCORE,
    CheckResult,
    Severity,
    clamp_score,
    severity_from_score,
)
from mintwatch.analysis_engine.onchain_checks import STANDARD_TOKEN_PROGRAMS, supply_findings
from mintwatch.core.exceptions import (
    CollaboratorError,
    CollaboratorFailure,
    CollaboratorTimeout,
    CollaboratorUnavailable,
    RateLimitExceeded,
)
from mintwatch.mintwatch_logging import get_logger, short
from mintwatch.solana_rpc.client import MintInfo, SolanaRpcClient
from mintwatch.solana_rpc.jupiter import SOL_MINT, JupiterClient

logger = get_logger(__name__)

SUBTEST_WEIGHTS = {
    "authority": 0.30,
    "program": 0.20,
    "supply": 0.15,
    "trading": 0.35,
}
MAX_CONFIDENCE = 0.9

BUY_AMOUNT_LAMPORTS = 10_000_000  # 0.01 SOL
NO_BUY_ROUTE_RISK = 80
SELL_BLOCKED_RISK = 95
HIGH_PRICE_IMPACT = 0.10  # priceImpactPct is a fraction
HIGH_PRICE_IMPACT_PENALTY = 10
SINGLE_HOP_PENALTY = 5


class HoneypotVerdict(str, Enum):
    CONFIRMED_HONEYPOT = "CONFIRMED_HONEYPOT"
    LIKELY_HONEYPOT = "LIKELY_HONEYPOT"
    SUSPICIOUS = "SUSPICIOUS"
    CAUTION_ADVISED = "CAUTION_ADVISED"
    LOW_RISK = "LOW_RISK"


def verdict_for(score: float) -> HoneypotVerdict:
    if score >= 80:
        return HoneypotVerdict.CONFIRMED_HONEYPOT
    if score >= 60:
        return HoneypotVerdict.LIKELY_HONEYPOT
    if score >= 40:
        return HoneypotVerdict.SUSPICIOUS
    if score >= 20:
        return HoneypotVerdict.CAUTION_ADVISED
    return HoneypotVerdict.LOW_RISK


@dataclass
class SubTest:
    name: str
    risk: int = 0
    codes: list[str] = field(default_factory=list)
    completed: bool = True
    reason: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def incomplete(cls, name: str, reason: str) -> "SubTest":
        return cls(name=name, completed=False, reason=reason)

    def to_dict(self) -> dict[str, Any]:
        return {
            "risk": self.risk,
            "codes": list(self.codes),
            "completed": self.completed,
            "reason": self.reason,
            "weight": SUBTEST_WEIGHTS[self.name],
            **self.details,
        }


def authority_subtest(mint_info: MintInfo) -> SubTest:
    test = SubTest("authority")
    if mint_info.mint_authority:
        test.codes.append("MINT_AUTHORITY_ACTIVE")
        test.risk += 40
    if mint_info.freeze_authority:
        test.codes.append("FREEZE_AUTHORITY_ACTIVE")
        test.risk += 50
    return test


async def program_subtest(rpc: SolanaRpcClient, mint: str) -> SubTest:
    account = await rpc.get_account_info(mint)
    if account is None:
        return SubTest("program", risk=90, codes=["ACCOUNT_NOT_FOUND"])
    if account.owner in STANDARD_TOKEN_PROGRAMS:
        return SubTest("program", details={"owner": account.owner})
    return SubTest("program", risk=60, codes=["NON_STANDARD_PROGRAM"], details={"owner": account.owner})


async def supply_subtest(rpc: SolanaRpcClient, mint_info: MintInfo) -> SubTest:
    supply = await rpc.get_token_supply(mint_info.address)
    codes, risk = supply_findings(supply, mint_info.decimals)
    return SubTest("supply", risk=risk, codes=codes, details={"supply": supply.ui_amount_string})


def _route_penalties(quote: dict[str, Any], leg: str, test: SubTest) -> None:
    try:
        impact = float(quote.get("priceImpactPct") or 0)
    except (TypeError, ValueError):
        impact = 0.0
    if impact > HIGH_PRICE_IMPACT:
        test.codes.append(f"HIGH_{leg}_PRICE_IMPACT")
        test.risk += HIGH_PRICE_IMPACT_PENALTY
    route_plan = quote.get("routePlan") or []
    if len(route_plan) == 1:
        test.codes.append(f"SINGLE_HOP_{leg}_ROUTE")
        test.risk += SINGLE_HOP_PENALTY
    test.details[f"{leg.lower()}_price_impact"] = impact
    test.details[f"{leg.lower()}_hops"] = len(route_plan)


async def trading_subtest(jupiter: JupiterClient | None, mint: str) -> SubTest:
    if jupiter is None:
        return SubTest.incomplete("trading", "swap collaborator not configured")
    test = SubTest("trading")
    try:
        buy = await jupiter.get_swap_quote(SOL_MINT, mint, BUY_AMOUNT_LAMPORTS)
    except (CollaboratorUnavailable, CollaboratorTimeout, RateLimitExceeded) as e:
        return SubTest.incomplete("trading", str(e))
    except CollaboratorFailure as e:
        test.codes.append("CANNOT_BUY_TOKEN")
        test.risk = NO_BUY_ROUTE_RISK
        test.details.update(can_buy=False, can_sell=None, buy_error=str(e))
        return test
    _route_penalties(buy, "BUY", test)

    try:
        sell = await jupiter.get_swap_quote(mint, SOL_MINT, int(buy["outAmount"]))
    except (CollaboratorUnavailable, CollaboratorTimeout, RateLimitExceeded) as e:
        return SubTest.incomplete("trading", str(e))
    except CollaboratorFailure as e:
        test.codes.append("CANNOT_SELL_TOKEN")
        test.risk = SELL_BLOCKED_RISK
        test.details.update(can_buy=True, can_sell=False, sell_error=str(e))
        return test
    _route_penalties(sell, "SELL", test)
    test.details.update(can_buy=True, can_sell=True)
    test.risk = min(test.risk, 100)
    return test


def combine(subtests: list[SubTest]) -> tuple[float, float]:
    """Weighted mean risk over completed sub-tests and the resulting confidence."""
    completed = [t for t in subtests if t.completed]
    total_weight = sum(SUBTEST_WEIGHTS[t.name] for t in completed)
    if total_weight == 0:
        return float(NEUTRAL_SCORE), 0.0
    overall = sum(t.risk * SUBTEST_WEIGHTS[t.name] for t in completed) / total_weight
    return overall, min(MAX_CONFIDENCE, total_weight)


_RECOMMENDATIONS = {
    "MINT_AUTHORITY_ACTIVE": "Mint authority not revoked - supply can be manipulated",
    "FREEZE_AUTHORITY_ACTIVE": "Freeze authority not revoked - accounts can be frozen",
    "CANNOT_SELL_TOKEN": "Cannot sell tokens - confirmed honeypot",
    "CANNOT_BUY_TOKEN": "No buy route found for token",
    "NON_STANDARD_PROGRAM": "Uses non-standard token program - higher risk",
}


async def check_honeypot(
    rpc: SolanaRpcClient,
    jupiter: JupiterClient | None,
    mint: str,
) -> CheckResult:
    subtests: list[SubTest] = []
    try:
        mint_info: MintInfo | None = await rpc.get_mint_info(mint)
    except CollaboratorError as e:
        mint_info = None
        subtests.append(SubTest.incomplete("authority", str(e)))
        subtests.append(SubTest.incomplete("supply", str(e)))
    if mint_info is not None:
        subtests.append(authority_subtest(mint_info))
        try:
            subtests.append(await supply_subtest(rpc, mint_info))
        except CollaboratorError as e:
            subtests.append(SubTest.incomplete("supply", str(e)))
    try:
        subtests.append(await program_subtest(rpc, mint))
    except CollaboratorError as e:
        subtests.append(SubTest.incomplete("program", str(e)))
    subtests.append(await trading_subtest(jupiter, mint))

    breakdown = {t.name: t.to_dict() for t in subtests}
    if not any(t.completed for t in subtests):
        return CheckResult(
            numeric_score=NEUTRAL_SCORE,
            severity=Severity.INFO,
            warnings=["honeypot sub-tests unavailable"],
            skipped=True,
            details={"breakdown": breakdown},
        )

    overall, confidence = combine(subtests)
    score = overall * confidence + NEUTRAL_SCORE * (1 - confidence)
    sell_blocked = any("CANNOT_SELL_TOKEN" in t.codes for t in subtests)
    if sell_blocked:
        score = max(score, SELL_BLOCKED_RISK)
    score = clamp_score(score)
    verdict = verdict_for(score)

    codes = [c for t in subtests for c in t.codes]
    issues = [_RECOMMENDATIONS[c] for c in codes if c in _RECOMMENDATIONS]
    warnings = [f"{t.name} sub-test skipped: {t.reason}" for t in subtests if not t.completed]
    warnings.extend(c for c in codes if c not in _RECOMMENDATIONS)

    logger.info(
        "check_honeypot_done",
        mint=short(mint),
        score=score,
        confidence=round(confidence, 2),
        verdict=verdict.value,
        sell_blocked=sell_blocked,
    )
    return CheckResult(
        numeric_score=score,
        severity=Severity.CRITICAL if sell_blocked else severity_from_score(score),
        issues=issues,
        warnings=warnings,
        decisive=sell_blocked,
        details={
            "verdict": verdict.value,
            "overall": round(overall, 2),
            "confidence": round(confidence, 2),
            "sell_blocked": sell_blocked,
            "breakdown": breakdown,
        },
    )
