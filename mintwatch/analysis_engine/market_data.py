"""Market data check: whether the token has a quoted USD price."""

from __future__ import annotations

from mintwatch.analysis_engine.models import NEUTRAL_SCORE, CheckResult, Severity
from mintwatch.core.exceptions import CollaboratorError
from mintwatch.mintwatch_logging import get_logger, short
from mintwatch.solana_rpc.jupiter import JupiterClient

logger = get_logger(__name__)


async def check_market_data(jupiter: JupiterClient, mint: str) -> CheckResult:
    try:
        price = await jupiter.get_price(mint)
    except CollaboratorError as e:
        logger.warning("market_data_unavailable", mint=short(mint), error=str(e))
        return CheckResult(
            numeric_score=NEUTRAL_SCORE,
            severity=Severity.MEDIUM,
            warnings=[f"Market data unavailable: {e}"],
            details={"price_usd": None},
        )
    if price is None:
        return CheckResult(
            numeric_score=NEUTRAL_SCORE,
            severity=Severity.MEDIUM,
            warnings=["No market price available"],
            details={"price_usd": None},
        )
    return CheckResult(numeric_score=0, severity=Severity.LOW, details={"price_usd": price})
