"""
Test that mintwatch_logging can be imported without circular import and logger works.
"""

from __future__ import annotations


def test_logging_import():
    """Import get_logger from mintwatch_logging and use the logger."""
    from mintwatch.mintwatch_logging import get_logger

    logger = get_logger("test")
    assert logger is not None
    assert hasattr(logger, "info")
    assert hasattr(logger, "debug")
    assert hasattr(logger, "warning")
    assert hasattr(logger, "error")
    # Smoke test: call info (should not raise)
    logger.info("test_message", key="value")


def test_short_truncates_long_values():
    from mintwatch.mintwatch_logging import short

    assert short(None) == ""
    assert short("abc") == "abc"
    assert short("x" * 20) == "x" * 16 + "..."


def test_bind_mint_returns_logger():
    from mintwatch.mintwatch_logging import bind_mint

    log = bind_mint("So11111111111111111111111111111111111111112")
    log.info("test_bound", check="basic_info")


def test_configured_level_takes_effect():
    """Loggers created before configure_structlog() follow the new level."""
    from structlog.testing import capture_logs

    from mintwatch.mintwatch_logging import configure_structlog, get_logger

    early = get_logger("level_check")
    try:
        configure_structlog("WARNING", "json")
        with capture_logs() as logs:
            early.info("quiet_event")
            get_logger("level_check_late").warning("loud_event")
        assert [entry["event"] for entry in logs] == ["loud_event"]

        configure_structlog("DEBUG", "console")
        with capture_logs() as logs:
            get_logger("level_check_debug").debug("debug_event")
        assert [entry["event"] for entry in logs] == ["debug_event"]
    finally:
        configure_structlog()
