"""
Holder distribution check: concentration of the largest token accounts.

getTokenLargestAccounts reports token accounts, so the first few holders are
resolved to the authority that can spend them. Accounts whose authority is a
burn sink are left out of the distribution.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from mintwatch.analysis_engine.liquidity import DEX_PROGRAMS
from mintwatch.analysis_engine.models import CheckResult, Severity, severity_from_findings
from mintwatch.core.exceptions import CollaboratorError
from mintwatch.core.identity import is_valid_address
from mintwatch.mintwatch_logging import get_logger, short
from mintwatch.solana_rpc.client import BURN_OWNERS, SYSTEM_PROGRAM_ID, SolanaRpcClient

logger = get_logger(__name__)

TOP_HOLDERS = 10
DEEP_CLASSIFIED_HOLDERS = 3


@dataclass
class Holder:
    address: str
    amount: float
    percentage: float
    holder_type: str = "HOLDER"
    owner: str | None = None
    analyzed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "owner": self.owner,
            "amount": self.amount,
            "percentage": round(self.percentage, 4),
            "type": self.holder_type,
            "analyzed": self.analyzed,
        }

@dataclass(frozen=True)
class Concentration:
    top1_percentage: float = 0.0
    top5_percentage: float = 0.0
    top10_percentage: float = 0.0
    herfindahl_index: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "top1_percentage": round(self.top1_percentage, 4),
            "top5_percentage": round(self.top5_percentage, 4),
            "top10_percentage": round(self.top10_percentage, 4),
            "herfindahl_index": round(self.herfindahl_index, 6),
        }


def calculate_concentration(holders: list[Holder]) -> Concentration:
    """Top-1/5/10 share of supply (percent) and HHI = sum of squared shares (0..1)."""
    if not holders:
        return Concentration()
    ordered = sorted(holders, key=lambda h: h.percentage, reverse=True)
    return Concentration(
        top1_percentage=ordered[0].percentage,
        top5_percentage=sum(h.percentage for h in ordered[:5]),
        top10_percentage=sum(h.percentage for h in ordered[:10]),
        herfindahl_index=sum((h.percentage / 100) ** 2 for h in ordered),
    )


def assess_holder_risks(
    concentration: Concentration, holders: list[Holder]
) -> tuple[list[str], list[str], int]:
    issues: list[str] = []
    warnings: list[str] = []
    risk = 0

    if concentration.top1_percentage > 50:
        issues.append(f"Single holder controls {concentration.top1_percentage:.2f}% of supply")
        risk += 40
    elif concentration.top1_percentage > 30:
        warnings.append(f"Top holder controls {concentration.top1_percentage:.2f}% of supply")
        risk += 20

    if concentration.top10_percentage > 80:
        issues.append(f"Top 10 holders control {concentration.top10_percentage:.2f}% of supply")
        risk += 30
    elif concentration.top10_percentage > 60:
        warnings.append(f"Top 10 holders control {concentration.top10_percentage:.2f}% of supply")
        risk += 15

    if concentration.herfindahl_index > 0.25:
        issues.append("Extremely concentrated holder distribution")
        risk += 25
    elif concentration.herfindahl_index > 0.15:
        warnings.append("Highly concentrated holder distribution")
        risk += 15

    program_holders = sum(1 for h in holders if h.holder_type == "PROGRAM")
    if program_holders:
        warnings.append(f"{program_holders} program-controlled holder accounts detected")
        risk += 10
    return issues, warnings, risk


async def classify_holder(rpc: SolanaRpcClient, address: str) -> tuple[str | None, str]:
    """
    (authority, type) for one holder token account.

    type is BURN, POOL (authority owned by a DEX program), PROGRAM (executable
    or program-controlled authority), WALLET or NOT_FOUND. An address that is
    not a token account is classified directly.
    """
    account = await rpc.get_account_info(address)
    if account is None:
        return None, "NOT_FOUND"
    owner = account.token_owner
    if owner is None:
        owner, authority = address, account
    elif owner in BURN_OWNERS:
        return owner, "BURN"
    else:
        authority = await rpc.get_account_info(owner)
    if authority is None:
        return owner, "NOT_FOUND"
    if authority.executable:
        return owner, "PROGRAM"
    if authority.owner in DEX_PROGRAMS:
        return owner, "POOL"
    if authority.owner != SYSTEM_PROGRAM_ID:
        return owner, "PROGRAM"
    return owner, "WALLET"


async def check_holders(rpc: SolanaRpcClient, mint: str) -> CheckResult:
    largest = await rpc.get_token_largest_accounts(mint, TOP_HOLDERS)
    if not largest:
        return CheckResult(
            numeric_score=100,
            severity=Severity.CRITICAL,
            issues=["No holder data available"],
            details={"holder_count": 0},
        )
    supply = await rpc.get_token_supply(mint)
    total_supply = supply.ui_amount
    if total_supply == 0:
        return CheckResult(
            numeric_score=100,
            severity=Severity.CRITICAL,
            issues=["Token has zero supply"],
            details={"holder_count": 0},
        )

    holders: list[Holder] = []
    burned = 0.0
    for position, account in enumerate(largest):
        if not account.ui_amount or not is_valid_address(account.address):
            continue
        holder = Holder(
            address=account.address,
            amount=account.ui_amount,
            percentage=account.ui_amount / total_supply * 100,
        )
        if position < DEEP_CLASSIFIED_HOLDERS:
            try:
                holder.owner, holder.holder_type = await classify_holder(rpc, account.address)
                holder.analyzed = True
            except CollaboratorError as e:
                logger.debug(
                    "holder_classification_skipped",
                    mint=short(mint),
                    holder=short(account.address),
                    error=str(e),
                )
        if holder.holder_type == "BURN":
            burned += holder.percentage
            continue
        holders.append(holder)

    concentration = calculate_concentration(holders)
    issues, warnings, risk = assess_holder_risks(concentration, holders)
    logger.info(
        "check_holders_done",
        mint=short(mint),
        holder_count=len(holders),
        burned=round(burned, 2),
        top1=round(concentration.top1_percentage, 2),
        hhi=round(concentration.herfindahl_index, 4),
    )
    return CheckResult(
        numeric_score=risk,
        severity=severity_from_findings(len(issues), len(warnings)),
        issues=issues,
        warnings=warnings,
        details={
            "holder_count": len(holders),
            "burned_percentage": round(burned, 4),
            "detailed_analysis_count": sum(1 for h in holders if h.analyzed),
            "concentration": concentration.to_dict(),
            "holders": [h.to_dict() for h in sorted(holders, key=lambda h: h.percentage, reverse=True)],
        },
    )
