"""
Data models for Solana listener output.

- LogNotification: one logsNotification from the logs stream.
- DetectionEvent: a classified token-creation detection, the unit of work
  handed to the analysis queue.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class LogNotification:
    """
    Normalized logsNotification payload.

    Mirrors the RPC message fields; err is None for a successful transaction.
    """

    signature: str
    slot: int | None
    logs: tuple[str, ...]
    err: Any = None

    @classmethod
    def from_message(cls, msg: dict[str, Any]) -> "LogNotification | None":
        """Build from a raw websocket message; None if it is not a logsNotification."""
        if msg.get("method") != "logsNotification":
            return None
        result = (msg.get("params") or {}).get("result") or {}
        value = result.get("value") or {}
        signature = value.get("signature")
        if not isinstance(signature, str) or not signature:
            return None
        logs = value.get("logs") or []
        slot = (result.get("context") or {}).get("slot")
        return cls(
            signature=signature,
            slot=int(slot) if isinstance(slot, int) else None,
            logs=tuple(str(line) for line in logs if line is not None),
            err=value.get("err"),
        )


def _wall_time() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class DetectionEvent:
    signature: str
    slot: int | None
    raw_log_lines: tuple[str, ...] = ()
    detected_at: float = field(default_factory=time.monotonic)
    """Monotonic clock reading used by the worker's age gate."""
    detected_wall_time: str = field(default_factory=_wall_time)

    @classmethod
    def from_notification(cls, notification: LogNotification) -> "DetectionEvent":
        return cls(
            signature=notification.signature,
            slot=notification.slot,
            raw_log_lines=notification.logs,
        )

    def age(self, now: float | None = None) -> float:
        return (time.monotonic() if now is None else now) - self.detected_at
