"""
Per-analysis collaborator reads.

AccountCache wraps the RPC collaborator for the lifetime of one analysis so
that checks asking for the same account (the mint is read by basic info,
authorities, program ownership and the honeypot check) share one
getAccountInfo call. MetadataCache does the same for the metadata client,
whose descriptor is read by both the metadata and the social check.

Concurrent readers await the same in-flight fetch; a reader that is cancelled
by its own deadline does not cancel the fetch for the others. Every other
collaborator method is passed through unchanged.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from mintwatch.solana_rpc.client import AccountInfo, MintInfo, SolanaRpcClient, mint_info_from
from mintwatch.solana_rpc.metadata import MetadataClient, TokenMetadata


def _retrieve(task: asyncio.Task) -> None:
    if not task.cancelled():
        task.exception()


class _SharedReads:
    def __init__(self, inner: Any) -> None:
        self._inner = inner
        self._tasks: dict[str, asyncio.Task] = {}

    def __getattr__(self, name: str) -> Any:
        return getattr(self._inner, name)

    @property
    def fetched(self) -> int:
        """Number of distinct keys requested from the collaborator."""
        return len(self._tasks)

    async def _shared(self, key: str, fetch: Callable[[], Awaitable[Any]]) -> Any:
        task = self._tasks.get(key)
        if task is None:
            task = asyncio.ensure_future(fetch())
            task.add_done_callback(_retrieve)
            self._tasks[key] = task
        return await asyncio.shield(task)


class AccountCache(_SharedReads):
    def __init__(self, rpc: SolanaRpcClient) -> None:
        super().__init__(rpc)

    async def get_account_info(self, address: str) -> AccountInfo | None:
        return await self._shared(address, lambda: self._inner.get_account_info(address))

    async def get_mint_info(self, mint: str) -> MintInfo:
        return mint_info_from(await self.get_account_info(mint))


class MetadataCache(_SharedReads):
    def __init__(self, metadata: MetadataClient) -> None:
        super().__init__(metadata)

    async def get_token_metadata(self, mint: str) -> TokenMetadata | None:
        return await self._shared(mint, lambda: self._inner.get_token_metadata(mint))
