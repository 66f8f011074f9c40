"""
Liquidity security check.

Pools are discovered among the 20 largest holders of the mint: a holder is a
pool vault when its token-account authority is an account owned by a known
DEX program. For each pool the LP mint is resolved from the pool account
(Raydium V4 layout only). Each large LP token account is resolved to its
authority: an incinerator or system-program authority counts as burned, and a
vesting-program authority counts as locked. Pools whose LP mint cannot be
resolved are estimated at 50%.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from solders.pubkey import Pubkey

from mintwatch.analysis_engine.models import CheckResult, Severity, severity_from_score
from mintwatch.core.exceptions import CollaboratorError
from mintwatch.mintwatch_logging import get_logger, short
from mintwatch.solana_rpc.client import BURN_OWNERS, MAX_LARGEST_ACCOUNTS, SolanaRpcClient

logger = get_logger(__name__)

RAYDIUM_V4 = "675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8"
ORCA_WHIRLPOOLS = "whirLbMiicVdio4qvUfM5KAg6Ct8VwpYzGff3uctyCc"
ORCA_V1 = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
METEORA = "Eo7WjKq67rjJQSZxS6z3YkapzY3eMj6Xy8X5EQVn5UaB"

DEX_PROGRAMS = {
    RAYDIUM_V4: "Raydium",
    ORCA_WHIRLPOOLS: "Orca",
    ORCA_V1: "Orca V1",
    METEORA: "Meteora",
}

BONFIDA_VESTING = "CChTq6PthWU82YZkbveA3WDf7s97BWhBK4Vx9bmsT743"
STREAMFLOW_VESTING = "8e72pYCDaxu3GqMfeQ5r8wFgoZSYk6oua1Qo9XpsZjX"
KNOWN_LOCKERS = {
    BONFIDA_VESTING: "Bonfida",
    STREAMFLOW_VESTING: "Streamflow",
}

RAYDIUM_V4_LP_MINT_OFFSET = 464
LP_HOLDERS_INSPECTED = 10
ESTIMATED_SECURED_PERCENTAGE = 50.0
NO_LIQUIDITY_SCORE = 70


class LiquidityStatus(str, Enum):
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    MODERATE = "MODERATE"
    POOR = "POOR"
    DANGEROUS = "DANGEROUS"
    NO_LIQUIDITY = "NO_LIQUIDITY"


STATUS_SCORES = {
    LiquidityStatus.EXCELLENT: 0,
    LiquidityStatus.GOOD: 15,
    LiquidityStatus.MODERATE: 35,
    LiquidityStatus.POOR: 60,
    LiquidityStatus.DANGEROUS: 85,
    LiquidityStatus.NO_LIQUIDITY: NO_LIQUIDITY_SCORE,
}


def security_status(secured_percentage: float) -> LiquidityStatus:
    if secured_percentage >= 95:
        return LiquidityStatus.EXCELLENT
    if secured_percentage >= 80:
        return LiquidityStatus.GOOD
    if secured_percentage >= 60:
        return LiquidityStatus.MODERATE
    if secured_percentage >= 30:
        return LiquidityStatus.POOR
    return LiquidityStatus.DANGEROUS


@dataclass
class Pool:
    address: str
    vault: str
    dex: str
    program: str
    token_balance: float
    lp_mint: str | None = None
    secured_percentage: float = ESTIMATED_SECURED_PERCENTAGE
    security_status: str = "ESTIMATED"
    burned_amount: float = 0.0
    locked_amount: float = 0.0
    lp_total_supply: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "vault": self.vault,
            "dex": self.dex,
            "program": self.program,
            "token_balance": self.token_balance,
            "lp_mint": self.lp_mint,
            "secured_percentage": round(self.secured_percentage, 2),
            "security_status": self.security_status,
            "burned_amount": self.burned_amount,
            "locked_amount": self.locked_amount,
            "lp_total_supply": self.lp_total_supply,
        }


def extract_lp_mint(program: str, data: bytes | None) -> str | None:
    """LP mint from raw pool state; only the Raydium AMM v4 layout is known."""
    if program != RAYDIUM_V4 or not data:
        return None
    end = RAYDIUM_V4_LP_MINT_OFFSET + 32
    if len(data) < end:
        return None
    lp_mint = Pubkey.from_bytes(data[RAYDIUM_V4_LP_MINT_OFFSET:end])
    if lp_mint == Pubkey.default():
        return None
    return str(lp_mint)


async def find_pools(rpc: SolanaRpcClient, mint: str) -> list[Pool]:
    pools: list[Pool] = []
    holders = await rpc.get_token_largest_accounts(mint, MAX_LARGEST_ACCOUNTS)
    for holder in holders:
        try:
            vault = await rpc.get_account_info(holder.address)
            authority = vault.token_owner if vault else None
            if not authority:
                continue
            pool_account = await rpc.get_account_info(authority)
        except CollaboratorError as e:
            logger.debug("liquidity_holder_lookup_failed", holder=short(holder.address), error=str(e))
            continue
        if pool_account is None or pool_account.owner not in DEX_PROGRAMS:
            continue
        pools.append(
            Pool(
                address=authority,
                vault=holder.address,
                dex=DEX_PROGRAMS[pool_account.owner],
                program=pool_account.owner,
                token_balance=holder.ui_amount,
                lp_mint=extract_lp_mint(pool_account.owner, pool_account.raw_data),
            )
        )
    return pools


async def lp_holder_state(rpc: SolanaRpcClient, token_account: str) -> str | None:
    """"burned", "locked" or None for one LP token account, judged by its authority."""
    account = await rpc.get_account_info(token_account)
    owner = account.token_owner if account else None
    if owner is None:
        return None
    if owner in BURN_OWNERS:
        return "burned"
    if owner in KNOWN_LOCKERS:
        return "locked"
    # vesting escrows hold tokens under an authority account owned by the locker program
    authority = await rpc.get_account_info(owner)
    if authority is not None and authority.owner in KNOWN_LOCKERS:
        return "locked"
    return None


async def assess_pool_security(rpc: SolanaRpcClient, pool: Pool) -> None:
    if not pool.lp_mint:
        return
    try:
        lp_supply = await rpc.get_token_supply(pool.lp_mint)
        lp_holders = await rpc.get_token_largest_accounts(pool.lp_mint, MAX_LARGEST_ACCOUNTS)
    except CollaboratorError as e:
        logger.warning("liquidity_pool_lookup_failed", pool=short(pool.address), error=str(e))
        return
    total = lp_supply.ui_amount
    if total <= 0:
        return
    for holder in lp_holders[:LP_HOLDERS_INSPECTED]:
        try:
            state = await lp_holder_state(rpc, holder.address)
        except CollaboratorError as e:
            logger.debug("liquidity_lp_holder_lookup_failed", holder=short(holder.address), error=str(e))
            continue
        if state == "burned":
            pool.burned_amount += holder.ui_amount
        elif state == "locked":
            pool.locked_amount += holder.ui_amount
    pool.lp_total_supply = total
    pool.secured_percentage = min(100.0, (pool.burned_amount + pool.locked_amount) / total * 100)
    pool.security_status = security_status(pool.secured_percentage).value


async def check_liquidity(rpc: SolanaRpcClient, mint: str) -> CheckResult:
    pools = await find_pools(rpc, mint)
    if not pools:
        return CheckResult(
            numeric_score=NO_LIQUIDITY_SCORE,
            severity=Severity.HIGH,
            issues=["No liquidity pools detected"],
            details={"status": LiquidityStatus.NO_LIQUIDITY.value, "pools": []},
        )
    for pool in pools:
        await assess_pool_security(rpc, pool)

    secured = sum(p.secured_percentage for p in pools) / len(pools)
    status = security_status(secured)
    issues: list[str] = []
    warnings: list[str] = []
    if secured < 30:
        issues.append("Very low liquidity security (<30% locked/burned)")
    elif secured < 60:
        warnings.append("Moderate liquidity security - some rug pull risk")
    if len(pools) == 1:
        warnings.append("Single liquidity pool detected")
    estimated = sum(1 for p in pools if p.security_status == "ESTIMATED")
    if estimated:
        warnings.append(f"{estimated} pool(s) with unresolved LP mint; security estimated")

    score = STATUS_SCORES[status]
    logger.info(
        "check_liquidity_done",
        mint=short(mint),
        pools=len(pools),
        secured_percentage=round(secured, 2),
        status=status.value,
    )
    return CheckResult(
        numeric_score=score,
        severity=severity_from_score(score),
        issues=issues,
        warnings=warnings,
        details={
            "status": status.value,
            "secured_percentage": round(secured, 2),
            "pools": [p.to_dict() for p in pools],
        },
    )
