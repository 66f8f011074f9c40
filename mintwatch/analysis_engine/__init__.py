"""
Analysis engine package: token risk checks and aggregation.

Runs a battery of heuristic checks against a mint (authorities, program,
supply, metadata, holders, liquidity, honeypot simulation, market data,
social links), each under its own deadline, and folds them into one risk
score and verdict.
"""

from mintwatch.analysis_engine.models import (
    CheckResult,
    SafetyLevel,
    Severity,
    TokenAnalysis,
)
from mintwatch.analysis_engine.orchestrator import (
    AnalysisOptions,
    AnalysisOrchestrator,
    CheckTimeouts,
    run_guarded,
)
from mintwatch.analysis_engine.scorer import (
    CHECK_WEIGHTS,
    build_analysis,
    compute_risk_score,
    generate_recommendations,
    safety_level,
)

__all__ = [
    "AnalysisOptions",
    "AnalysisOrchestrator",
    "CHECK_WEIGHTS",
    "CheckResult",
    "CheckTimeouts",
    "SafetyLevel",
    "Severity",
    "TokenAnalysis",
    "build_analysis",
    "compute_risk_score",
    "generate_recommendations",
    "run_guarded",
    "safety_level",
]
