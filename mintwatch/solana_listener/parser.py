"""
Mint extraction from a jsonParsed getTransaction payload.

Purely structural; returns the candidate address and leaves validation to
TokenIdentity.
"""

from __future__ import annotations

from typing import Any, Iterator

from mintwatch.mintwatch_logging import get_logger

logger = get_logger(__name__)

INITIALIZE_MINT_TYPES = frozenset({"initializeMint", "initializeMint2"})


def _instructions(tx: dict[str, Any]) -> Iterator[dict[str, Any]]:
    message = (tx.get("transaction") or {}).get("message") or {}
    for ix in message.get("instructions") or []:
        if isinstance(ix, dict):
            yield ix
    for group in (tx.get("meta") or {}).get("innerInstructions") or []:
        for ix in (group or {}).get("instructions") or []:
            if isinstance(ix, dict):
                yield ix


def _account_key(entry: Any) -> str | None:
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict):
        pubkey = entry.get("pubkey")
        return pubkey if isinstance(pubkey, str) else None
    return None


def extract_mint(tx: dict[str, Any] | None) -> str | None:
    """
    Mint address created by the transaction, or None.

    Order of preference:
    1. info.mint of a parsed initializeMint / initializeMint2 instruction
       (outer or inner);
    2. mint of the first postTokenBalances entry;
    3. the second account key (pump-style create puts the new mint there).
    """
    if not tx:
        return None
    for ix in _instructions(tx):
        parsed = ix.get("parsed")
        if isinstance(parsed, dict) and parsed.get("type") in INITIALIZE_MINT_TYPES:
            mint = (parsed.get("info") or {}).get("mint")
            if isinstance(mint, str) and mint:
                return mint

    balances = (tx.get("meta") or {}).get("postTokenBalances") or []
    if balances and isinstance(balances[0], dict):
        mint = balances[0].get("mint")
        if isinstance(mint, str) and mint:
            return mint

    message = (tx.get("transaction") or {}).get("message") or {}
    keys = message.get("accountKeys") or []
    if len(keys) > 1:
        candidate = _account_key(keys[1])
        if candidate:
            logger.debug("mint_from_account_keys", mint=candidate)
            return candidate
    return None
