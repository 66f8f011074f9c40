"""
Environment variable loading and validation for MintWatch.

- SOLANA_RPC_HTTP: HTTP JSON-RPC endpoint (read from .env)
- SOLANA_RPC_WSS: WebSocket endpoint for logsSubscribe; derived from the HTTP URL when unset
- HELIUS_API_KEY: Helius API key (fallback for RPC URL when SOLANA_RPC_HTTP is unset)
- PUMP_PROGRAM_ID: program whose logs are watched for token creation
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is mintwatch/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_PUMP_PROGRAM_ID = "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P"

MAINNET_RPC_URL = "https://api.mainnet-beta.solana.com"
HELIUS_MAINNET_URL_TEMPLATE = "https://mainnet.helius-rpc.com/?api-key={key}"

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off")


def load_mintwatch_env() -> None:
    """Load .env from project root. Safe to call multiple times; never overrides real env."""
    load_dotenv(_ENV_PATH, override=False)


def http_to_ws_url(http_url: str) -> str:
    """Convert https:// or http:// to wss:// or ws:// for the logs stream."""
    s = http_url.strip()
    if s.startswith("https://"):
        return "wss://" + s[8:]
    if s.startswith("http://"):
        return "ws://" + s[7:]
    return s


def get_solana_rpc_http() -> str:
    """
    Resolve the HTTP RPC URL from env.
    Order: SOLANA_RPC_HTTP > SOLANA_RPC_URL > HELIUS_API_KEY > public mainnet.
    """
    load_mintwatch_env()
    for name in ("SOLANA_RPC_HTTP", "SOLANA_RPC_URL"):
        url = (os.getenv(name) or "").strip()
        # The literal string "undefined" leaks in from shell templates
        if url and url != "undefined":
            return url
    key = (os.getenv("HELIUS_API_KEY") or "").strip()
    if key:
        return HELIUS_MAINNET_URL_TEMPLATE.format(key=key)
    return MAINNET_RPC_URL


def get_solana_rpc_wss() -> str:
    """Return SOLANA_RPC_WSS, or the HTTP URL rewritten to a WebSocket scheme."""
    load_mintwatch_env()
    url = (os.getenv("SOLANA_RPC_WSS") or "").strip()
    if url and url != "undefined":
        return url
    return http_to_ws_url(get_solana_rpc_http())


def get_pump_program_id() -> str:
    """Return PUMP_PROGRAM_ID from env, or the pump.fun program default."""
    load_mintwatch_env()
    return (os.getenv("PUMP_PROGRAM_ID") or "").strip() or DEFAULT_PUMP_PROGRAM_ID


def env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def env_bool(name: str, default: bool) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    return default


def mask_url(url: str) -> str:
    """Mask API key in URL if present."""
    if "api-key=" in url:
        return url.split("api-key=")[0] + "api-key=***"
    return url
