"""Metadata completeness check (Metaplex account + off-chain descriptor)."""

from __future__ import annotations

from mintwatch.analysis_engine.models import CheckResult, severity_from_findings
from mintwatch.mintwatch_logging import get_logger, short
from mintwatch.solana_rpc.metadata import MetadataClient

logger = get_logger(__name__)

NO_METADATA_PENALTY = 30
MISSING_FIELD_PENALTY = 20
URI_PENALTY = 10
VERIFIED_CREATOR_BONUS = 10


async def check_metadata(metadata_client: MetadataClient, mint: str) -> CheckResult:
    metadata = await metadata_client.get_token_metadata(mint)
    if metadata is None:
        return CheckResult(
            numeric_score=NO_METADATA_PENALTY,
            severity=severity_from_findings(1, 0),
            issues=["No metadata account found"],
            details={"source": None},
        )

    issues: list[str] = []
    warnings: list[str] = []
    risk = 0
    if not metadata.name:
        issues.append("Token has no name")
        risk += MISSING_FIELD_PENALTY
    if not metadata.symbol:
        issues.append("Token has no symbol")
        risk += MISSING_FIELD_PENALTY
    if not metadata.uri:
        warnings.append("Token has no metadata URI")
        risk += URI_PENALTY
    elif metadata.offchain is None:
        warnings.append(f"Metadata URI unreachable: {metadata.offchain_error or 'unknown error'}")
        risk += URI_PENALTY
    if metadata.has_verified_creator:
        risk -= VERIFIED_CREATOR_BONUS

    logger.debug("check_metadata_done", mint=short(mint), name=metadata.name, symbol=metadata.symbol)
    return CheckResult(
        numeric_score=max(0, risk),
        severity=severity_from_findings(len(issues), len(warnings)),
        issues=issues,
        warnings=warnings,
        details=metadata.to_dict(),
    )
