"""
Structured logging: timestamp, event_type, mint, signature.

structlog with ISO timestamps, log level, and consistent keys for
aggregation. Pipeline modules take a logger from get_logger() at import
time; the logger stays lazy until its first call, so configure_structlog()
run from the entry point (with Settings.log_level / Settings.log_format)
still governs it.

Uses only Python stdlib logging and structlog; no mintwatch imports to avoid circular imports.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

# Fallbacks until the entry point configures from Settings
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL_VALUE = getattr(logging, LOG_LEVEL, logging.INFO)
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()

# reconfiguring later keeps writing to the process stdout seen at import
_STREAM = sys.stdout


def _add_timestamp(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Ensure timestamp is always present (ISO 8601)."""
    if "timestamp" not in event_dict:
        event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _normalize_event(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Rename structlog 'event' to event_type; keep message if present."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    if "message" not in event_dict and "event_type" in event_dict:
        event_dict["message"] = str(event_dict["event_type"])
    return event_dict


def configure_structlog(level: str | None = None, fmt: str | None = None) -> None:
    """
    Configure structlog: JSON or console rendering, filtered at level.

    Runs once at import with env defaults. main() calls it again with the
    loaded Settings before anything logs; loggers that have already emitted
    keep the configuration they were first used with.
    """
    level_value = getattr(logging, (level or LOG_LEVEL).upper(), LOG_LEVEL_VALUE)
    log_format = (fmt or LOG_FORMAT).strip().lower()
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_timestamp,
        _normalize_event,
    ]
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=_STREAM),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Return a structured logger for the given module name.

        logger = get_logger(__name__)
        logger.info("analysis_complete", mint=mint, risk_score=85)

    Output (JSON): {"event_type": "analysis_complete", "mint": "...", "risk_score": 85,
    "timestamp": "...", "level": "info", "logger": "module.name"}
    """
    return structlog.get_logger(name, logger_name=name)


def bind_mint(mint: str) -> structlog.BoundLogger:
    """Return a logger with mint bound to all subsequent log calls."""
    return get_logger("mintwatch").bind(mint=mint)


def short(value: str | None, length: int = 16) -> str:
    """Truncate long base58 strings for log fields."""
    if not value:
        return ""
    return value[:length] + "..." if len(value) > length else value
