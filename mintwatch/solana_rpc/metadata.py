"""
Metaplex token metadata collaborator.

Derives the metadata PDA for a mint, decodes the fixed-prefix account layout
(name, symbol, uri, creators) and fetches the off-chain JSON descriptor.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Any

import httpx
from solders.pubkey import Pubkey

from mintwatch.core.exceptions import CollaboratorFailure
from mintwatch.mintwatch_logging import get_logger, short
from mintwatch.solana_rpc.client import SolanaRpcClient

logger = get_logger(__name__)

METADATA_PROGRAM_ID = "metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s"
OFFCHAIN_TIMEOUT_SEC = 5.0


@dataclass(frozen=True)
class Creator:
    address: str
    verified: bool
    share: int


@dataclass(frozen=True)
class TokenMetadata:
    """Decoded on-chain metadata plus the off-chain descriptor when reachable."""

    mint: str
    name: str
    symbol: str
    uri: str
    update_authority: str | None = None
    seller_fee_basis_points: int = 0
    creators: tuple[Creator, ...] = ()
    offchain: dict[str, Any] | None = None
    offchain_error: str | None = None
    source: str = "METAPLEX"

    @property
    def has_verified_creator(self) -> bool:
        return any(c.verified for c in self.creators)

    def to_dict(self) -> dict[str, Any]:
        return {
            "mint": self.mint,
            "name": self.name,
            "symbol": self.symbol,
            "uri": self.uri,
            "update_authority": self.update_authority,
            "creators": [
                {"address": c.address, "verified": c.verified, "share": c.share}
                for c in self.creators
            ],
            "offchain_reachable": self.offchain is not None,
            "source": self.source,
        }


def find_metadata_pda(mint: str) -> str:
    """Program-derived address of the metadata account for mint."""
    program = Pubkey.from_string(METADATA_PROGRAM_ID)
    pda, _bump = Pubkey.find_program_address(
        [b"metadata", bytes(program), bytes(Pubkey.from_string(mint))],
        program,
    )
    return str(pda)


def _read_string(data: bytes, offset: int) -> tuple[str, int]:
    (length,) = struct.unpack_from("<I", data, offset)
    offset += 4
    raw = data[offset : offset + length]
    if len(raw) != length:
        raise ValueError("truncated string")
    return raw.decode("utf-8", errors="replace").replace("\x00", "").strip(), offset + length


def decode_metadata(mint: str, data: bytes) -> TokenMetadata:
    """
    Decode the Metadata account prefix:
    key u8 | update_authority [32] | mint [32] | name | symbol | uri |
    seller_fee_basis_points u16 | creators Option<Vec<{address [32], verified u8, share u8}>>
    """
    try:
        offset = 1
        update_authority = str(Pubkey.from_bytes(data[offset : offset + 32]))
        offset += 64  # update authority + mint
        name, offset = _read_string(data, offset)
        symbol, offset = _read_string(data, offset)
        uri, offset = _read_string(data, offset)
        (fee_bps,) = struct.unpack_from("<H", data, offset)
        offset += 2
        creators: list[Creator] = []
        if data[offset] == 1:
            offset += 1
            (count,) = struct.unpack_from("<I", data, offset)
            offset += 4
            for _ in range(count):
                address = str(Pubkey.from_bytes(data[offset : offset + 32]))
                verified = data[offset + 32] == 1
                share = data[offset + 33]
                creators.append(Creator(address=address, verified=verified, share=share))
                offset += 34
    except (struct.error, IndexError, ValueError) as e:
        raise CollaboratorFailure(f"Undecodable metadata account: {e}", source="metadata") from e
    return TokenMetadata(
        mint=mint,
        name=name,
        symbol=symbol,
        uri=uri,
        update_authority=update_authority,
        seller_fee_basis_points=fee_bps,
        creators=tuple(creators),
    )


class MetadataClient:
    """On-chain metadata via the RPC client; off-chain JSON via httpx."""

    def __init__(
        self,
        rpc: SolanaRpcClient,
        *,
        http_client: httpx.AsyncClient | None = None,
        offchain_timeout_sec: float = OFFCHAIN_TIMEOUT_SEC,
    ) -> None:
        self._rpc = rpc
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(offchain_timeout_sec), follow_redirects=True
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def get_token_metadata(self, mint: str) -> TokenMetadata | None:
        """Decoded metadata, or None when the mint has no Metaplex metadata account."""
        pda = find_metadata_pda(mint)
        account = await self._rpc.get_account_info(pda)
        if account is None or not account.raw_data:
            logger.debug("metadata_account_missing", mint=short(mint))
            return None
        metadata = decode_metadata(mint, account.raw_data)
        if not metadata.uri:
            return metadata
        offchain, error = await self._fetch_offchain(metadata.uri)
        return TokenMetadata(
            mint=metadata.mint,
            name=metadata.name,
            symbol=metadata.symbol,
            uri=metadata.uri,
            update_authority=metadata.update_authority,
            seller_fee_basis_points=metadata.seller_fee_basis_points,
            creators=metadata.creators,
            offchain=offchain,
            offchain_error=error,
        )

    async def _fetch_offchain(self, uri: str) -> tuple[dict[str, Any] | None, str | None]:
        try:
            resp = await self._client.get(uri)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("metadata_offchain_fetch_failed", uri=uri[:80], error=str(e))
            return None, str(e) or type(e).__name__
        if not isinstance(data, dict):
            return None, "descriptor is not a JSON object"
        return data, None
