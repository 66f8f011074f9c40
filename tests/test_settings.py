"""
Tests for environment-driven settings.
"""

from __future__ import annotations

import pytest

from mintwatch.analysis_engine import AnalysisOptions
from mintwatch.config.env import http_to_ws_url, mask_url
from mintwatch.config.settings import get_settings, reset_settings_for_test

ENV_VARS = (
    "SOLANA_RPC_HTTP",
    "SOLANA_RPC_URL",
    "SOLANA_RPC_WSS",
    "HELIUS_API_KEY",
    "PUMP_PROGRAM_ID",
    "MAX_QUEUE_SIZE",
    "MIN_ANALYSIS_AGE_SEC",
    "INCLUDE_HOLDERS",
    "INCLUDE_HONEYPOT",
    "CONCURRENT_CHECKS",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
    return monkeypatch


def test_defaults(clean_env):
    s = get_settings()
    assert s.rpc_http_url == "https://api.mainnet-beta.solana.com"
    assert s.rpc_wss_url == "wss://api.mainnet-beta.solana.com"
    assert s.program_id == "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P"
    assert s.max_queue_size == 20
    assert s.min_analysis_age_sec == 5.0
    assert s.include_honeypot is True
    assert s.include_holders is False


def test_env_overrides(clean_env):
    clean_env.setenv("SOLANA_RPC_HTTP", "https://rpc.example.com")
    clean_env.setenv("MAX_QUEUE_SIZE", "3")
    clean_env.setenv("INCLUDE_HOLDERS", "yes")
    clean_env.setenv("CONCURRENT_CHECKS", "1")
    s = get_settings()
    assert s.rpc_wss_url == "wss://rpc.example.com"
    assert s.max_queue_size == 3
    options = AnalysisOptions.from_settings(s)
    assert options.include_holders is True
    assert options.concurrent_checks is True


def test_helius_key_fallback(clean_env):
    clean_env.setenv("HELIUS_API_KEY", "secret")
    s = get_settings()
    assert s.rpc_http_url == "https://mainnet.helius-rpc.com/?api-key=secret"
    assert mask_url(s.rpc_http_url) == "https://mainnet.helius-rpc.com/?api-key=***"


def test_settings_cached_until_reset(clean_env):
    first = get_settings()
    clean_env.setenv("MAX_QUEUE_SIZE", "7")
    assert get_settings() is first
    reset_settings_for_test()
    assert get_settings().max_queue_size == 7


def test_invalid_values_rejected(clean_env):
    clean_env.setenv("MAX_QUEUE_SIZE", "zero")
    with pytest.raises(ValueError):
        get_settings()
    reset_settings_for_test()
    clean_env.setenv("MAX_QUEUE_SIZE", "0")
    with pytest.raises(ValueError):
        get_settings()


def test_http_to_ws_url():
    assert http_to_ws_url("http://localhost:8899") == "ws://localhost:8899"
    assert http_to_ws_url("wss://already") == "wss://already"


def test_log_settings(clean_env):
    clean_env.setenv("LOG_LEVEL", "warning")
    clean_env.setenv("LOG_FORMAT", "Console")
    s = get_settings()
    assert (s.log_level, s.log_format) == ("WARNING", "console")
    reset_settings_for_test()
    clean_env.setenv("LOG_LEVEL", "chatty")
    with pytest.raises(ValueError, match="LOG_LEVEL"):
        get_settings()
