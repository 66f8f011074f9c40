"""
Result types of the analysis engine.

Every CheckResult uses one polarity: numeric_score 0 means no risk signal and
100 means maximal risk, the same direction as TokenAnalysis.risk_score.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

NEUTRAL_SCORE = 50
"""Score reported by a skipped check; never enters the weighted average."""
FAILURE_SCORE = 70
"""Conservative penalty for a check whose collaborator failed."""


class Severity(str, Enum):
    INFO = "info"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER.index(self)


_SEVERITY_ORDER = (
    Severity.INFO,
    Severity.LOW,
    Severity.MEDIUM,
    Severity.HIGH,
    Severity.CRITICAL,
)


class SafetyLevel(str, Enum):
    EXTREMELY_DANGEROUS = "extremely dangerous"
    HIGH_RISK = "high risk"
    MODERATE_RISK = "moderate risk"
    LOW_RISK = "low risk"
    APPEARS_SAFE = "appears safe"


def clamp_score(value: float) -> int:
    return int(max(0, min(100, round(value))))


def _freeze(details: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(details or {}))


@dataclass(frozen=True)
class CheckResult:
    """
    Outcome of one check for one token.

    issues are findings that raise risk on their own; warnings are softer
    signals. skipped results carry NEUTRAL_SCORE for display only.
    """

    numeric_score: int
    severity: Severity
    issues: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    skipped: bool = False
    decisive: bool = False
    """When True the final verdict is forced into the top band."""
    details: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "numeric_score", clamp_score(self.numeric_score))
        object.__setattr__(self, "issues", tuple(self.issues))
        object.__setattr__(self, "warnings", tuple(self.warnings))
        object.__setattr__(self, "details", _freeze(self.details))

    @classmethod
    def timed_out(cls, check_name: str, timeout_sec: float) -> "CheckResult":
        return cls(
            numeric_score=NEUTRAL_SCORE,
            severity=Severity.INFO,
            warnings=(f"{check_name} timed out",),
            skipped=True,
            details={"timeout_sec": timeout_sec},
        )

    @classmethod
    def failed(cls, check_name: str, error: BaseException) -> "CheckResult":
        return cls(
            numeric_score=FAILURE_SCORE,
            severity=Severity.MEDIUM,
            issues=(f"{check_name} failed: {error}",),
            details={"error_type": type(error).__name__},
        )

    @classmethod
    def disabled(cls, check_name: str) -> "CheckResult":
        return cls(
            numeric_score=NEUTRAL_SCORE,
            severity=Severity.INFO,
            warnings=(f"{check_name} disabled",),
            skipped=True,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "numeric_score": self.numeric_score,
            "severity": self.severity.value,
            "issues": list(self.issues),
            "warnings": list(self.warnings),
            "skipped": self.skipped,
            "decisive": self.decisive,
            "details": _jsonable(self.details),
        }


def severity_from_findings(issues: int, warnings: int) -> Severity:
    """Holder-style severity ladder: any issue is critical, many warnings are high."""
    if issues > 0:
        return Severity.CRITICAL
    if warnings > 2:
        return Severity.HIGH
    if warnings > 0:
        return Severity.MEDIUM
    return Severity.LOW


def severity_from_score(score: float) -> Severity:
    if score > 80:
        return Severity.CRITICAL
    if score > 50:
        return Severity.HIGH
    if score > 20:
        return Severity.MEDIUM
    return Severity.LOW


@dataclass(frozen=True)
class TokenAnalysis:
    """Finalized analysis of one mint; immutable once built by the aggregator."""

    token: str
    timestamp: datetime
    checks: Mapping[str, CheckResult]
    risk_score: int
    safety_level: SafetyLevel
    recommendations: tuple[str, ...]
    signature: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "checks", MappingProxyType(dict(self.checks)))
        object.__setattr__(self, "recommendations", tuple(self.recommendations))

    @property
    def issues(self) -> list[str]:
        return [i for result in self.checks.values() for i in result.issues]

    @property
    def warnings(self) -> list[str]:
        return [w for result in self.checks.values() for w in result.warnings]

    def to_dict(self) -> dict[str, Any]:
        return {
            "token": self.token,
            "timestamp": self.timestamp.isoformat(),
            "signature": self.signature,
            "risk_score": self.risk_score,
            "safety_level": self.safety_level.value,
            "recommendations": list(self.recommendations),
            "checks": {name: result.to_dict() for name, result in self.checks.items()},
        }


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _jsonable(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value
