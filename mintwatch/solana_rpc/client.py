"""
Solana JSON-RPC client: the chain collaborator of the analysis engine.

Every call goes through the shared RequestScheduler and is retried with
exponential backoff on transport errors, HTTP 429 and 5xx. RPC-level errors
are raised as CollaboratorFailure; unreachable endpoints as
CollaboratorUnavailable; exhausted deadlines as CollaboratorTimeout.
"""

from __future__ import annotations

import asyncio
import base64
import itertools
from dataclasses import dataclass, field
from typing import Any

import httpx

from mintwatch.core.exceptions import (
    CollaboratorError,
    CollaboratorFailure,
    CollaboratorTimeout,
    CollaboratorUnavailable,
)
from mintwatch.mintwatch_logging import get_logger, short
from mintwatch.solana_rpc.rate_limit import RequestScheduler

logger = get_logger(__name__)

TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_2022_PROGRAM_ID = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"
SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"
INCINERATOR = "1nc1nerator11111111111111111111111111111111"
# token accounts whose authority is one of these can never be spent
BURN_OWNERS = frozenset({SYSTEM_PROGRAM_ID, INCINERATOR})

DEFAULT_COMMITMENT = "confirmed"
DEFAULT_TIMEOUT_SEC = 15.0
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_DELAY_SEC = 1.0
MAX_RETRY_DELAY_SEC = 30.0
# getTokenLargestAccounts never returns more than 20 entries
MAX_LARGEST_ACCOUNTS = 20


@dataclass(frozen=True)
class AccountInfo:
    """Normalized getAccountInfo value."""

    address: str
    owner: str
    lamports: int
    executable: bool = False
    raw_data: bytes | None = None
    """Account data bytes when the node returned base64 (non-parsable programs)."""
    parsed: dict[str, Any] | None = None
    """jsonParsed payload ({"program", "parsed": {"type", "info"}}) when available."""

    @property
    def parsed_type(self) -> str | None:
        if not self.parsed:
            return None
        inner = self.parsed.get("parsed")
        return inner.get("type") if isinstance(inner, dict) else None

    @property
    def parsed_info(self) -> dict[str, Any]:
        if not self.parsed:
            return {}
        inner = self.parsed.get("parsed")
        info = inner.get("info") if isinstance(inner, dict) else None
        return info if isinstance(info, dict) else {}

    @property
    def token_owner(self) -> str | None:
        """Authority of an SPL token account; None for any other account."""
        if self.parsed_type != "account":
            return None
        return self.parsed_info.get("owner") or None

    @classmethod
    def from_rpc_value(cls, address: str, value: dict[str, Any]) -> "AccountInfo":
        data = value.get("data")
        raw: bytes | None = None
        parsed: dict[str, Any] | None = None
        if isinstance(data, dict):
            parsed = data
        elif isinstance(data, list) and data and isinstance(data[0], str):
            encoding = data[1] if len(data) > 1 else "base64"
            if encoding == "base64":
                raw = base64.b64decode(data[0])
        return cls(
            address=address,
            owner=str(value.get("owner") or ""),
            lamports=int(value.get("lamports") or 0),
            executable=bool(value.get("executable")),
            raw_data=raw,
            parsed=parsed,
        )


@dataclass(frozen=True)
class MintInfo:
    """SPL mint fields from a jsonParsed mint account."""

    address: str
    program_id: str
    decimals: int
    supply: int
    mint_authority: str | None
    freeze_authority: str | None
    is_initialized: bool = True

    @classmethod
    def from_account(cls, account: AccountInfo) -> "MintInfo":
        info = account.parsed_info
        return cls(
            address=account.address,
            program_id=account.owner,
            decimals=int(info.get("decimals") or 0),
            supply=int(info.get("supply") or 0),
            mint_authority=info.get("mintAuthority") or None,
            freeze_authority=info.get("freezeAuthority") or None,
            is_initialized=bool(info.get("isInitialized", True)),
        )


def mint_info_from(account: AccountInfo | None) -> MintInfo:
    """MintInfo for a fetched account; CollaboratorFailure when it is missing or not a mint."""
    if account is None:
        raise CollaboratorFailure("Token mint not found", source="rpc")
    if account.parsed_type != "mint":
        raise CollaboratorFailure("Not a valid token mint", source="rpc")
    return MintInfo.from_account(account)


@dataclass(frozen=True)
class TokenSupply:
    amount: int
    decimals: int
    ui_amount_string: str

    @property
    def ui_amount(self) -> float:
        try:
            return float(self.ui_amount_string or "0")
        except ValueError:
            return 0.0


@dataclass(frozen=True)
class TokenAccountBalance:
    """One entry of getTokenLargestAccounts."""

    address: str
    amount: int
    ui_amount: float
    decimals: int = 0


@dataclass
class _RetryPolicy:
    attempts: int = DEFAULT_RETRY_ATTEMPTS
    delay_sec: float = DEFAULT_RETRY_DELAY_SEC
    retry_statuses: tuple[int, ...] = field(default=(429, 500, 502, 503, 504))


class SolanaRpcClient:
    """
    Async JSON-RPC client over httpx.

    Owns its httpx.AsyncClient unless one is passed in; call aclose() (or use
    `async with`) to release connections.
    """

    def __init__(
        self,
        rpc_url: str,
        scheduler: RequestScheduler,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        retry_delay_sec: float = DEFAULT_RETRY_DELAY_SEC,
        commitment: str = DEFAULT_COMMITMENT,
    ) -> None:
        if not rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        self._rpc_url = rpc_url.rstrip("/")
        self._scheduler = scheduler
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_sec))
        self._retry = _RetryPolicy(attempts=max(1, retry_attempts), delay_sec=retry_delay_sec)
        self._commitment = commitment
        self._ids = itertools.count(1)

    async def __aenter__(self) -> "SolanaRpcClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @property
    def scheduler(self) -> RequestScheduler:
        return self._scheduler

    async def call(self, method: str, params: list[Any], *, credits: int = 1) -> Any:
        """Perform one JSON-RPC call with scheduling and retry; return `result`."""
        delay = self._retry.delay_sec
        attempts = self._retry.attempts
        for attempt in range(1, attempts + 1):
            try:
                return await self._scheduler.execute(
                    lambda: self._post(method, params), credits=credits
                )
            except (CollaboratorUnavailable, CollaboratorTimeout) as e:
                error: CollaboratorError = e
            except CollaboratorFailure as e:
                if e.code not in self._retry.retry_statuses:
                    raise
                error = e
            if attempt == attempts:
                logger.error("rpc_give_up", method=method, max_retries=attempts, error=str(error))
                raise error
            logger.warning(
                "rpc_retry",
                method=method,
                attempt=attempt,
                max_retries=attempts,
                error=str(error),
            )
            await asyncio.sleep(delay)
            delay = min(delay * 2, MAX_RETRY_DELAY_SEC)

    async def _post(self, method: str, params: list[Any]) -> Any:
        body = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            resp = await self._client.post(self._rpc_url, json=body)
        except httpx.TimeoutException as e:
            raise CollaboratorTimeout(f"{method} timed out: {e}", source="rpc") from e
        except httpx.TransportError as e:
            raise CollaboratorUnavailable(f"{method} transport error: {e}", source="rpc") from e
        if resp.status_code >= 400:
            raise CollaboratorFailure(
                f"{method} HTTP {resp.status_code}",
                source="rpc",
                code=resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError as e:
            raise CollaboratorFailure(f"{method} returned invalid JSON", source="rpc") from e
        if "error" in data and data["error"]:
            err = data["error"]
            message = err.get("message", err) if isinstance(err, dict) else err
            code = err.get("code") if isinstance(err, dict) else None
            raise CollaboratorFailure(
                f"Solana RPC error: {message} (code={code})", source="rpc", code=code
            )
        return data.get("result")

    async def get_account_info(self, address: str) -> AccountInfo | None:
        """getAccountInfo (jsonParsed); None when the account does not exist."""
        result = await self.call(
            "getAccountInfo",
            [address, {"encoding": "jsonParsed", "commitment": self._commitment}],
        )
        value = (result or {}).get("value") if isinstance(result, dict) else None
        if not value:
            return None
        return AccountInfo.from_rpc_value(address, value)

    async def get_mint_info(self, mint: str) -> MintInfo:
        """Parsed SPL mint fields; CollaboratorFailure when the account is missing or not a mint."""
        return mint_info_from(await self.get_account_info(mint))

    async def get_token_supply(self, mint: str) -> TokenSupply:
        result = await self.call("getTokenSupply", [mint, {"commitment": self._commitment}])
        value = (result or {}).get("value") if isinstance(result, dict) else None
        if not isinstance(value, dict):
            raise CollaboratorFailure("getTokenSupply returned no value", source="rpc")
        return TokenSupply(
            amount=int(value.get("amount") or 0),
            decimals=int(value.get("decimals") or 0),
            ui_amount_string=str(value.get("uiAmountString") or "0"),
        )

    async def get_token_largest_accounts(
        self, mint: str, limit: int = MAX_LARGEST_ACCOUNTS
    ) -> list[TokenAccountBalance]:
        result = await self.call(
            "getTokenLargestAccounts", [mint, {"commitment": self._commitment}]
        )
        value = (result or {}).get("value") if isinstance(result, dict) else None
        if not isinstance(value, list):
            return []
        out: list[TokenAccountBalance] = []
        for item in value[: max(0, min(limit, MAX_LARGEST_ACCOUNTS))]:
            if not isinstance(item, dict) or "address" not in item:
                continue
            out.append(
                TokenAccountBalance(
                    address=item["address"],
                    amount=int(item.get("amount") or 0),
                    ui_amount=float(item.get("uiAmount") or 0.0),
                    decimals=int(item.get("decimals") or 0),
                )
            )
        return out

    async def get_transaction(self, signature: str) -> dict[str, Any] | None:
        """getTransaction (jsonParsed); None when the node does not know the signature yet."""
        result = await self.call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "jsonParsed",
                    "commitment": self._commitment,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )
        if result is None:
            logger.debug("rpc_transaction_not_found", signature=short(signature))
            return None
        return result
