"""
Application settings and environment configuration.

Responsibilities:
- Load configuration from environment variables and .env files.
- Validate settings and provide defaults for optional ones.
- Expose typed settings (RPC endpoints, queue capacity, age gate, rate limits,
  check toggles, timeouts and log output) for use across listener, worker and analysis engine.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from mintwatch.config.env import (
    env_bool,
    env_float,
    env_int,
    get_pump_program_id,
    get_solana_rpc_http,
    get_solana_rpc_wss,
    load_mintwatch_env,
)

DEFAULT_MAX_QUEUE_SIZE = 20
DEFAULT_MIN_ANALYSIS_AGE_SEC = 5.0
DEFAULT_WORKER_INTERVAL_SEC = 3.0
DEFAULT_PROCESSED_SET_MAX = 100_000
DEFAULT_MAX_REQUESTS_PER_SECOND = 15.0
DEFAULT_MAX_CONCURRENT_REQUESTS = 5
DEFAULT_MAX_TOTAL_CREDITS = 10_000_000
DEFAULT_RPC_TIMEOUT_SEC = 15.0
DEFAULT_RPC_RETRY_ATTEMPTS = 3
DEFAULT_RPC_RETRY_DELAY_SEC = 1.0
DEFAULT_RECONNECT_MIN_SEC = 1.0
DEFAULT_RECONNECT_MAX_SEC = 60.0
DEFAULT_JUPITER_QUOTE_URL = "https://quote-api.jup.ag/v6"
DEFAULT_JUPITER_PRICE_URL = "https://api.jup.ag/price/v2"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "json"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("json", "console")


@dataclass(frozen=True)
class Settings:
    """Typed view over the process environment."""

    rpc_http_url: str
    rpc_wss_url: str
    program_id: str
    max_queue_size: int = DEFAULT_MAX_QUEUE_SIZE
    min_analysis_age_sec: float = DEFAULT_MIN_ANALYSIS_AGE_SEC
    worker_interval_sec: float = DEFAULT_WORKER_INTERVAL_SEC
    processed_set_max: int = DEFAULT_PROCESSED_SET_MAX
    max_requests_per_second: float = DEFAULT_MAX_REQUESTS_PER_SECOND
    max_concurrent_requests: int = DEFAULT_MAX_CONCURRENT_REQUESTS
    max_total_credits: int = DEFAULT_MAX_TOTAL_CREDITS
    rpc_timeout_sec: float = DEFAULT_RPC_TIMEOUT_SEC
    rpc_retry_attempts: int = DEFAULT_RPC_RETRY_ATTEMPTS
    rpc_retry_delay_sec: float = DEFAULT_RPC_RETRY_DELAY_SEC
    reconnect_min_sec: float = DEFAULT_RECONNECT_MIN_SEC
    reconnect_max_sec: float = DEFAULT_RECONNECT_MAX_SEC
    jupiter_quote_url: str = DEFAULT_JUPITER_QUOTE_URL
    jupiter_price_url: str = DEFAULT_JUPITER_PRICE_URL
    concurrent_checks: bool = False
    include_metadata: bool = True
    include_holders: bool = False
    include_liquidity: bool = False
    include_honeypot: bool = True
    include_market_data: bool = False
    include_social: bool = False
    analysis_log_path: str | None = None
    log_level: str = DEFAULT_LOG_LEVEL
    log_format: str = DEFAULT_LOG_FORMAT

    def __post_init__(self) -> None:
        if self.max_queue_size < 1:
            raise ValueError("MAX_QUEUE_SIZE must be at least 1")
        if self.min_analysis_age_sec < 0:
            raise ValueError("MIN_ANALYSIS_AGE_SEC must be non-negative")
        if self.worker_interval_sec <= 0:
            raise ValueError("WORKER_INTERVAL_SEC must be positive")
        if self.processed_set_max < 0:
            raise ValueError("PROCESSED_SET_MAX must be non-negative (0 = unbounded)")
        if self.max_requests_per_second <= 0 or self.max_concurrent_requests < 1:
            raise ValueError("rate limits must be positive")
        if self.reconnect_min_sec <= 0 or self.reconnect_max_sec < self.reconnect_min_sec:
            raise ValueError("RECONNECT_MIN_SEC must be positive and <= RECONNECT_MAX_SEC")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")
        if self.log_format not in LOG_FORMATS:
            raise ValueError("LOG_FORMAT must be json or console")


def load_settings() -> Settings:
    """Build Settings from the environment (after loading .env)."""
    load_mintwatch_env()
    return Settings(
        rpc_http_url=get_solana_rpc_http(),
        rpc_wss_url=get_solana_rpc_wss(),
        program_id=get_pump_program_id(),
        max_queue_size=env_int("MAX_QUEUE_SIZE", DEFAULT_MAX_QUEUE_SIZE),
        min_analysis_age_sec=env_float("MIN_ANALYSIS_AGE_SEC", DEFAULT_MIN_ANALYSIS_AGE_SEC),
        worker_interval_sec=env_float("WORKER_INTERVAL_SEC", DEFAULT_WORKER_INTERVAL_SEC),
        processed_set_max=env_int("PROCESSED_SET_MAX", DEFAULT_PROCESSED_SET_MAX),
        max_requests_per_second=env_float("MAX_REQUESTS_PER_SECOND", DEFAULT_MAX_REQUESTS_PER_SECOND),
        max_concurrent_requests=env_int("MAX_CONCURRENT_REQUESTS", DEFAULT_MAX_CONCURRENT_REQUESTS),
        max_total_credits=env_int("MAX_TOTAL_CREDITS", DEFAULT_MAX_TOTAL_CREDITS),
        rpc_timeout_sec=env_float("RPC_TIMEOUT_SEC", DEFAULT_RPC_TIMEOUT_SEC),
        rpc_retry_attempts=env_int("RPC_RETRY_ATTEMPTS", DEFAULT_RPC_RETRY_ATTEMPTS),
        rpc_retry_delay_sec=env_float("RPC_RETRY_DELAY_SEC", DEFAULT_RPC_RETRY_DELAY_SEC),
        reconnect_min_sec=env_float("RECONNECT_MIN_SEC", DEFAULT_RECONNECT_MIN_SEC),
        reconnect_max_sec=env_float("RECONNECT_MAX_SEC", DEFAULT_RECONNECT_MAX_SEC),
        jupiter_quote_url=(os.getenv("JUPITER_QUOTE_URL") or DEFAULT_JUPITER_QUOTE_URL).strip(),
        jupiter_price_url=(os.getenv("JUPITER_PRICE_URL") or DEFAULT_JUPITER_PRICE_URL).strip(),
        concurrent_checks=env_bool("CONCURRENT_CHECKS", False),
        include_metadata=env_bool("INCLUDE_METADATA", True),
        include_holders=env_bool("INCLUDE_HOLDERS", False),
        include_liquidity=env_bool("INCLUDE_LIQUIDITY", False),
        include_honeypot=env_bool("INCLUDE_HONEYPOT", True),
        include_market_data=env_bool("INCLUDE_MARKET_DATA", False),
        include_social=env_bool("INCLUDE_SOCIAL", False),
        analysis_log_path=(os.getenv("ANALYSIS_LOG_PATH") or "").strip() or None,
        log_level=(os.getenv("LOG_LEVEL") or DEFAULT_LOG_LEVEL).strip().upper(),
        log_format=(os.getenv("LOG_FORMAT") or DEFAULT_LOG_FORMAT).strip().lower(),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return the current application settings.

    Cached for the process lifetime; tests call reset_settings_for_test()
    after changing the environment.
    """
    return load_settings()


def reset_settings_for_test() -> None:
    get_settings.cache_clear()
