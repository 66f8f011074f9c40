"""
Risk score computation: weighted aggregation of check results.

Responsibilities:
- Combine per-check numeric scores into one 0-100 risk score.
- Exclude skipped checks from the weighted denominator.
- Map the score to a safety level and derive ordered recommendations.
"""

from __future__ import annotations

from datetime import datetime
from typing import Mapping

from mintwatch.analysis_engine.models import (
    NEUTRAL_SCORE,
    CheckResult,
    SafetyLevel,
    Severity,
    TokenAnalysis,
    clamp_score,
    utcnow,
)

CHECK_WEIGHTS = {
    "basic_info": 10,
    "authorities": 40,
    "program_ownership": 20,
    "metadata": 5,
    "holders": 15,
    "liquidity": 15,
    "honeypot": 30,
    "market_data": 5,
    "social": 5,
}
DEFAULT_WEIGHT = 10
DECISIVE_FLOOR = 80
CORROBORATING_CRITICALS = 2

NO_CRITICAL_ISSUES = "No critical issues detected - always do your own research"


def compute_risk_score(
    checks: Mapping[str, CheckResult],
    *,
    weights: Mapping[str, float] = CHECK_WEIGHTS,
    default_weight: float = DEFAULT_WEIGHT,
) -> int:
    """
    Compute the risk score (0-100) from settled check results.

    Weighted mean of numeric_score over non-skipped checks. When every check
    was skipped the score is neutral. A decisive non-skipped result floors the
    score at DECISIVE_FLOOR, and so do CORROBORATING_CRITICALS or more
    independent checks reporting critical severity.

    Args:
        checks: Check name to result, fully settled.
        weights: Per-check weights; unknown names use default_weight.
        default_weight: Weight for checks missing from weights.

    Returns:
        Integer score in [0, 100].
    """
    total = 0.0
    total_weight = 0.0
    decisive = False
    criticals = 0
    for name, result in checks.items():
        if result.skipped:
            continue
        weight = weights.get(name, default_weight)
        total += result.numeric_score * weight
        total_weight += weight
        decisive = decisive or result.decisive
        if result.severity is Severity.CRITICAL:
            criticals += 1
    if total_weight == 0:
        return NEUTRAL_SCORE
    score = clamp_score(total / total_weight)
    if decisive or criticals >= CORROBORATING_CRITICALS:
        score = max(score, DECISIVE_FLOOR)
    return score


def safety_level(score: float) -> SafetyLevel:
    if score >= 80:
        return SafetyLevel.EXTREMELY_DANGEROUS
    if score >= 60:
        return SafetyLevel.HIGH_RISK
    if score >= 40:
        return SafetyLevel.MODERATE_RISK
    if score >= 20:
        return SafetyLevel.LOW_RISK
    return SafetyLevel.APPEARS_SAFE


def _active(checks: Mapping[str, CheckResult], name: str) -> CheckResult | None:
    result = checks.get(name)
    if result is None or result.skipped:
        return None
    return result


def generate_recommendations(checks: Mapping[str, CheckResult]) -> list[str]:
    """Ordered: mint authority, freeze authority, honeypot, program, holder majority, liquidity."""
    out: list[str] = []

    authorities = _active(checks, "authorities")
    if authorities is not None:
        if authorities.details.get("mint_authority"):
            out.append("AVOID: Mint authority is active - unlimited tokens can be minted")
        if authorities.details.get("freeze_authority"):
            out.append("AVOID: Freeze authority is active - your tokens can be frozen")

    honeypot = _active(checks, "honeypot")
    if honeypot is not None and (
        honeypot.decisive
        or honeypot.details.get("verdict") in ("CONFIRMED_HONEYPOT", "LIKELY_HONEYPOT")
    ):
        out.append("AVOID: Token shows honeypot behaviour - you may not be able to sell")

    program = _active(checks, "program_ownership")
    if program is not None and program.details.get("is_standard_program") is False:
        out.append("CAUTION: Token uses a non-standard program")

    holders = _active(checks, "holders")
    if holders is not None:
        top1 = (holders.details.get("concentration") or {}).get("top1_percentage", 0)
        if top1 > 50:
            out.append("CAUTION: A single holder controls the majority of supply")

    liquidity = _active(checks, "liquidity")
    if liquidity is not None and liquidity.details.get("status") in (
        "POOR",
        "DANGEROUS",
        "NO_LIQUIDITY",
    ):
        out.append("CAUTION: Liquidity is not locked or burned - rug pull risk")

    if not out:
        out.append(NO_CRITICAL_ISSUES)
    return out


def build_analysis(
    token: str,
    checks: Mapping[str, CheckResult],
    *,
    signature: str | None = None,
    timestamp: datetime | None = None,
) -> TokenAnalysis:
    score = compute_risk_score(checks)
    return TokenAnalysis(
        token=token,
        timestamp=timestamp or utcnow(),
        checks=checks,
        risk_score=score,
        safety_level=safety_level(score),
        recommendations=generate_recommendations(checks),
        signature=signature,
    )
