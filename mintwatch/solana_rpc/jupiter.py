"""
Jupiter swap-quote and price client, the trading-simulation collaborator.

A quote that Jupiter refuses (no route, 4xx) raises CollaboratorFailure; a
network-level failure raises CollaboratorUnavailable so callers can tell
"route does not exist" from "could not ask".
"""

from __future__ import annotations

from typing import Any

import httpx

from mintwatch.core.exceptions import (
    CollaboratorFailure,
    CollaboratorTimeout,
    CollaboratorUnavailable,
)
from mintwatch.mintwatch_logging import get_logger, short
from mintwatch.solana_rpc.rate_limit import RequestScheduler

logger = get_logger(__name__)

SOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"

DEFAULT_QUOTE_URL = "https://quote-api.jup.ag/v6"
DEFAULT_PRICE_URL = "https://api.jup.ag/price/v2"
DEFAULT_SLIPPAGE_BPS = 50
DEFAULT_TIMEOUT_SEC = 10.0


class JupiterClient:
    """Async client for /quote and the price API."""

    def __init__(
        self,
        scheduler: RequestScheduler,
        *,
        quote_url: str = DEFAULT_QUOTE_URL,
        price_url: str = DEFAULT_PRICE_URL,
        http_client: httpx.AsyncClient | None = None,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
    ) -> None:
        self._scheduler = scheduler
        self._quote_url = quote_url.rstrip("/")
        self._price_url = price_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_sec))

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _get(self, url: str, params: dict[str, Any]) -> dict[str, Any]:
        async def _request() -> httpx.Response:
            return await self._client.get(url, params=params)

        try:
            resp = await self._scheduler.execute(_request)
        except httpx.TimeoutException as e:
            raise CollaboratorTimeout(f"GET {url} timed out", source="jupiter") from e
        except httpx.TransportError as e:
            raise CollaboratorUnavailable(f"GET {url} failed: {e}", source="jupiter") from e
        if resp.status_code >= 400:
            detail = ""
            try:
                payload = resp.json()
                detail = str(payload.get("error") or payload.get("errorCode") or "")
            except ValueError:
                pass
            raise CollaboratorFailure(
                f"GET {url} - {resp.status_code}: {detail or resp.reason_phrase}",
                source="jupiter",
                code=resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError as e:
            raise CollaboratorFailure(f"GET {url} returned invalid JSON", source="jupiter") from e
        if not isinstance(data, dict):
            raise CollaboratorFailure(f"GET {url} returned unexpected payload", source="jupiter")
        return data

    async def get_swap_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: int = DEFAULT_SLIPPAGE_BPS,
    ) -> dict[str, Any]:
        """Return a Jupiter quote; raise CollaboratorFailure when no route exists."""
        quote = await self._get(
            f"{self._quote_url}/quote",
            {
                "inputMint": input_mint,
                "outputMint": output_mint,
                "amount": str(int(amount)),
                "slippageBps": str(slippage_bps),
            },
        )
        if quote.get("error") or not quote.get("outAmount"):
            raise CollaboratorFailure(
                f"No route {short(input_mint, 8)} -> {short(output_mint, 8)}: "
                f"{quote.get('error') or 'empty quote'}",
                source="jupiter",
            )
        logger.debug(
            "jupiter_quote",
            input_mint=short(input_mint),
            output_mint=short(output_mint),
            out_amount=quote.get("outAmount"),
            price_impact_pct=quote.get("priceImpactPct"),
        )
        return quote

    async def get_price(self, mint: str) -> float | None:
        """USD price of mint, or None when Jupiter has no price for it."""
        data = await self._get(self._price_url, {"ids": mint})
        entry = (data.get("data") or {}).get(mint)
        if not isinstance(entry, dict):
            return None
        try:
            price = float(entry.get("price"))
        except (TypeError, ValueError):
            return None
        return price if price > 0 else None
