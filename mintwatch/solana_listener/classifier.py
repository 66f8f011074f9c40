"""
Token-creation predicate over a transaction's program log lines.
"""

from __future__ import annotations

from typing import Iterable

MINT_CREATION_MARKERS = (
    "Instruction: InitializeMint2",
    "Instruction: InitializeMint",
)
CREATE_MARKER = "Instruction: Create"
NOISE_MARKERS = (
    "Instruction: Swap",
    "Instruction: Transfer",
    "Instruction: TransferChecked",
    "Instruction: Burn",
    "Instruction: Sell",
)


def is_token_creation(log_lines: Iterable[str]) -> bool:
    """
    True when the logs contain a creation marker and no trading noise.

    "Instruction: Create" only counts when some line also mentions a mint
    (pump-style create instructions log the new mint alongside).
    """
    lines = [line for line in log_lines if line]
    if not lines:
        return False
    if any(marker in line for line in lines for marker in NOISE_MARKERS):
        return False
    if any(marker in line for line in lines for marker in MINT_CREATION_MARKERS):
        return True
    has_create = any(line.rstrip().endswith(CREATE_MARKER) for line in lines)
    mentions_mint = any("mint" in line.lower() for line in lines)
    return has_create and mentions_mint
