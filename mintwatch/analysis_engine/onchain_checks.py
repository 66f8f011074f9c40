"""
Fast on-chain checks: basic info / supply metrics, authorities, program ownership.

Each check reads only the RPC collaborator and returns one CheckResult with
risk polarity (0 = no signal, 100 = maximal risk). Collaborator exceptions
propagate to the orchestrator, which converts them into failed results.
"""

from __future__ import annotations

from mintwatch.analysis_engine.models import CheckResult, Severity, severity_from_score
from mintwatch.mintwatch_logging import get_logger, short
from mintwatch.solana_rpc.client import (
    TOKEN_2022_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    MintInfo,
    SolanaRpcClient,
    TokenSupply,
)

logger = get_logger(__name__)

STANDARD_TOKEN_PROGRAMS = frozenset({TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID})

MINT_AUTHORITY_PENALTY = 60
FREEZE_AUTHORITY_PENALTY = 80
NON_STANDARD_PROGRAM_SCORE = 90
MISSING_ACCOUNT_SCORE = 100
NOT_A_MINT_SCORE = 90

ZERO_SUPPLY_PENALTY = 80
HIGH_SUPPLY_THRESHOLD = 1e12
HIGH_SUPPLY_PENALTY = 15
UNUSUAL_DECIMALS_PENALTY = 10
MAX_NORMAL_DECIMALS = 18


def supply_findings(supply: TokenSupply, decimals: int) -> tuple[list[str], int]:
    """
    Supply-mechanics heuristic shared with the honeypot sub-test.
    Returns (issue codes, risk points).
    """
    codes: list[str] = []
    risk = 0
    total = supply.ui_amount
    if total == 0:
        codes.append("ZERO_SUPPLY")
        risk += ZERO_SUPPLY_PENALTY
    elif total > HIGH_SUPPLY_THRESHOLD:
        codes.append("EXTREMELY_HIGH_SUPPLY")
        risk += HIGH_SUPPLY_PENALTY
    if decimals == 0 or decimals > MAX_NORMAL_DECIMALS:
        codes.append("UNUSUAL_DECIMALS")
        risk += UNUSUAL_DECIMALS_PENALTY
    return codes, risk


async def check_basic_info(rpc: SolanaRpcClient, mint: str) -> CheckResult:
    """Mint info + supply; scores supply metrics (zero, huge, odd decimals)."""
    account = await rpc.get_account_info(mint)
    if account is None:
        return CheckResult(
            numeric_score=MISSING_ACCOUNT_SCORE,
            severity=Severity.CRITICAL,
            issues=["Token mint not found"],
        )
    if account.parsed_type != "mint":
        return CheckResult(
            numeric_score=NOT_A_MINT_SCORE,
            severity=Severity.CRITICAL,
            issues=["Account is not a valid SPL token mint"],
            details={"owner": account.owner, "parsed_type": account.parsed_type},
        )
    mint_info = MintInfo.from_account(account)
    supply = await rpc.get_token_supply(mint)
    codes, risk = supply_findings(supply, mint_info.decimals)

    issues: list[str] = []
    warnings: list[str] = []
    if "ZERO_SUPPLY" in codes:
        issues.append("Token has zero supply")
    if "EXTREMELY_HIGH_SUPPLY" in codes:
        warnings.append(f"Extremely high supply: {supply.ui_amount_string}")
    if "UNUSUAL_DECIMALS" in codes:
        warnings.append(f"Unusual decimals: {mint_info.decimals}")

    logger.debug(
        "check_basic_info",
        mint=short(mint),
        supply=supply.ui_amount_string,
        decimals=mint_info.decimals,
        risk=risk,
    )
    return CheckResult(
        numeric_score=risk,
        severity=severity_from_score(risk),
        issues=issues,
        warnings=warnings,
        details={
            "supply": supply.ui_amount_string,
            "raw_supply": supply.amount,
            "decimals": mint_info.decimals,
            "program_id": mint_info.program_id,
        },
    )


async def check_authorities(rpc: SolanaRpcClient, mint: str) -> CheckResult:
    """Active mint authority can inflate supply; active freeze authority can lock holders."""
    mint_info = await rpc.get_mint_info(mint)
    issues: list[str] = []
    risk = 0
    if mint_info.mint_authority:
        issues.append("Mint authority not revoked - supply can be inflated")
        risk += MINT_AUTHORITY_PENALTY
    if mint_info.freeze_authority:
        issues.append("Freeze authority not revoked - holder accounts can be frozen")
        risk += FREEZE_AUTHORITY_PENALTY

    if mint_info.freeze_authority:
        severity = Severity.CRITICAL
    elif mint_info.mint_authority:
        severity = Severity.HIGH
    else:
        severity = Severity.LOW
    return CheckResult(
        numeric_score=risk,
        severity=severity,
        issues=issues,
        details={
            "mint_authority": mint_info.mint_authority,
            "freeze_authority": mint_info.freeze_authority,
        },
    )


async def check_program_ownership(rpc: SolanaRpcClient, mint: str) -> CheckResult:
    """Owning program must be SPL Token or Token-2022."""
    account = await rpc.get_account_info(mint)
    if account is None:
        return CheckResult(
            numeric_score=MISSING_ACCOUNT_SCORE,
            severity=Severity.CRITICAL,
            issues=["Token account not found"],
            details={"owner": None, "is_standard_program": False},
        )
    is_standard = account.owner in STANDARD_TOKEN_PROGRAMS
    if is_standard:
        return CheckResult(
            numeric_score=0,
            severity=Severity.LOW,
            details={"owner": account.owner, "is_standard_program": True},
        )
    logger.info("check_program_non_standard", mint=short(mint), owner=account.owner)
    return CheckResult(
        numeric_score=NON_STANDARD_PROGRAM_SCORE,
        severity=Severity.CRITICAL,
        issues=[f"Non-standard program owner: {account.owner}"],
        details={"owner": account.owner, "is_standard_program": False},
    )
