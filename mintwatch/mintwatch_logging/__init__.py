"""
Structured logging for MintWatch.

JSON logs with timestamp, event_type, mint and signature fields.
Use get_logger() in all pipeline modules for aggregation-friendly output.
"""

from mintwatch.mintwatch_logging.logger import (
    bind_mint,
    configure_structlog,
    get_logger,
    short,
)

__all__ = ["bind_mint", "configure_structlog", "get_logger", "short"]
