"""
Pytest fixtures for MintWatch tests. In-memory fakes stand in for the RPC,
swap-quote and metadata collaborators.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest
from solders.pubkey import Pubkey

from mintwatch.analysis_engine.liquidity import RAYDIUM_V4_LP_MINT_OFFSET
from mintwatch.core.exceptions import CollaboratorFailure
from mintwatch.solana_rpc.client import (
    INCINERATOR,
    TOKEN_PROGRAM_ID,
    AccountInfo,
    MintInfo,
    TokenAccountBalance,
    TokenSupply,
    mint_info_from,
)
from mintwatch.solana_rpc.rate_limit import RequestScheduler


def new_address() -> str:
    return str(Pubkey.new_unique())


def raydium_pool_data(lp_mint: str) -> bytes:
    """Raw AMM v4 pool state with lp_mint at its fixed offset."""
    return b"\x01" * RAYDIUM_V4_LP_MINT_OFFSET + bytes(Pubkey.from_string(lp_mint)) + b"\x00" * 256


def mint_account(
    mint: str,
    *,
    owner: str = TOKEN_PROGRAM_ID,
    decimals: int = 6,
    supply: int = 1_000_000_000_000_000,
    mint_authority: str | None = None,
    freeze_authority: str | None = None,
) -> AccountInfo:
    """jsonParsed mint account as getAccountInfo returns it."""
    return AccountInfo(
        address=mint,
        owner=owner,
        lamports=1_461_600,
        parsed={
            "program": "spl-token",
            "parsed": {
                "type": "mint",
                "info": {
                    "decimals": decimals,
                    "supply": str(supply),
                    "mintAuthority": mint_authority,
                    "freezeAuthority": freeze_authority,
                    "isInitialized": True,
                },
            },
        },
    )


def token_account(address: str, mint: str, authority: str) -> AccountInfo:
    return AccountInfo(
        address=address,
        owner=TOKEN_PROGRAM_ID,
        lamports=2_039_280,
        parsed={
            "program": "spl-token",
            "parsed": {"type": "account", "info": {"mint": mint, "owner": authority}},
        },
    )


def supply_of(ui_amount: float, decimals: int = 6) -> TokenSupply:
    return TokenSupply(
        amount=int(ui_amount * 10**decimals),
        decimals=decimals,
        ui_amount_string=repr(float(ui_amount)) if ui_amount else "0",
    )


def balance(address: str, ui_amount: float, decimals: int = 6) -> TokenAccountBalance:
    return TokenAccountBalance(
        address=address,
        amount=int(ui_amount * 10**decimals),
        ui_amount=ui_amount,
        decimals=decimals,
    )


def held_by(rpc: "FakeRpc", mint: str, authority: str, ui_amount: float) -> TokenAccountBalance:
    """Register a token account of mint spendable by authority and return its balance entry."""
    address = new_address()
    rpc.accounts[address] = token_account(address, mint, authority)
    return balance(address, ui_amount)


class FakeRpc:
    """
    In-memory stand-in for SolanaRpcClient.

    errors maps "method" or "method:address" to an exception to raise;
    delays maps a method name to seconds to sleep before answering.
    """

    def __init__(self) -> None:
        self.accounts: dict[str, AccountInfo] = {}
        self.supplies: dict[str, TokenSupply] = {}
        self.largest: dict[str, list[TokenAccountBalance]] = {}
        self.transactions: dict[str, dict[str, Any]] = {}
        self.errors: dict[str, BaseException] = {}
        self.delays: dict[str, float] = {}
        self.calls: list[tuple[str, str]] = []
        self.scheduler = RequestScheduler()

    async def _enter(self, method: str, key: str) -> None:
        self.calls.append((method, key))
        delay = self.delays.get(method)
        if delay:
            await asyncio.sleep(delay)
        err = self.errors.get(f"{method}:{key}") or self.errors.get(method)
        if err is not None:
            raise err

    async def get_account_info(self, address: str) -> AccountInfo | None:
        await self._enter("get_account_info", address)
        return self.accounts.get(address)

    async def get_mint_info(self, mint: str) -> MintInfo:
        return mint_info_from(await self.get_account_info(mint))

    async def get_token_supply(self, mint: str) -> TokenSupply:
        await self._enter("get_token_supply", mint)
        if mint not in self.supplies:
            raise CollaboratorFailure("getTokenSupply returned no value", source="rpc")
        return self.supplies[mint]

    async def get_token_largest_accounts(self, mint: str, limit: int = 20) -> list[TokenAccountBalance]:
        await self._enter("get_token_largest_accounts", mint)
        return list(self.largest.get(mint, []))[:limit]

    async def get_transaction(self, signature: str) -> dict[str, Any] | None:
        await self._enter("get_transaction", signature)
        return self.transactions.get(signature)


class FakeJupiter:
    """Quotes keyed by (input_mint, output_mint); a missing pair raises CollaboratorFailure."""

    def __init__(self) -> None:
        self.quotes: dict[tuple[str, str], dict[str, Any] | BaseException] = {}
        self.prices: dict[str, float | None] = {}
        self.price_error: BaseException | None = None

    async def get_swap_quote(
        self, input_mint: str, output_mint: str, amount: int, slippage_bps: int = 50
    ) -> dict[str, Any]:
        quote = self.quotes.get((input_mint, output_mint))
        if quote is None:
            raise CollaboratorFailure("No route found", source="jupiter", code=400)
        if isinstance(quote, BaseException):
            raise quote
        return quote

    async def get_price(self, mint: str) -> float | None:
        if self.price_error is not None:
            raise self.price_error
        return self.prices.get(mint)


class FakeMetadata:
    def __init__(self, metadata: Any = None) -> None:
        self.metadata = metadata

    async def get_token_metadata(self, mint: str) -> Any:
        return self.metadata


@pytest.fixture
def rpc() -> FakeRpc:
    return FakeRpc()


@pytest.fixture
def jupiter() -> FakeJupiter:
    return FakeJupiter()


@pytest.fixture
def mint() -> str:
    return new_address()


@pytest.fixture(autouse=True)
def _isolated_settings():
    """Each test sees settings rebuilt from its own environment."""
    from mintwatch.config.settings import reset_settings_for_test

    reset_settings_for_test()
    yield
    reset_settings_for_test()
