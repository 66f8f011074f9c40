"""
Solana listener package: logs-stream detection of newly created mints.

DetectionListener lives in mintwatch.solana_listener.listener; it depends on
the agent_worker queue and state, so it is not re-exported here.
"""

from mintwatch.solana_listener.classifier import is_token_creation
from mintwatch.solana_listener.models import DetectionEvent, LogNotification
from mintwatch.solana_listener.parser import extract_mint

__all__ = [
    "DetectionEvent",
    "LogNotification",
    "extract_mint",
    "is_token_creation",
]
