"""
Chain and market collaborators: JSON-RPC, swap quotes / prices, token metadata.

All clients share one RequestScheduler so the global request rate, the
concurrency cap and the credit budget apply across every caller.
"""

from mintwatch.solana_rpc.account_cache import AccountCache, MetadataCache
from mintwatch.solana_rpc.client import (
    SYSTEM_PROGRAM_ID,
    TOKEN_2022_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    AccountInfo,
    MintInfo,
    SolanaRpcClient,
    TokenAccountBalance,
    TokenSupply,
)
from mintwatch.solana_rpc.jupiter import SOL_MINT, JupiterClient
from mintwatch.solana_rpc.metadata import MetadataClient, TokenMetadata
from mintwatch.solana_rpc.rate_limit import RequestScheduler

__all__ = [
    "AccountCache",
    "AccountInfo",
    "JupiterClient",
    "MetadataCache",
    "MetadataClient",
    "MintInfo",
    "RequestScheduler",
    "SOL_MINT",
    "SYSTEM_PROGRAM_ID",
    "SolanaRpcClient",
    "TOKEN_2022_PROGRAM_ID",
    "TOKEN_PROGRAM_ID",
    "TokenAccountBalance",
    "TokenMetadata",
    "TokenSupply",
]
