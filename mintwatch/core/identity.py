"""
Token identity: validated base58 mint address.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from solders.pubkey import Pubkey

from mintwatch.core.exceptions import ValidationError

BASE58_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]+$")
MIN_ADDRESS_LEN = 32
MAX_ADDRESS_LEN = 44


def is_valid_address(address: object) -> bool:
    """True if address is a base58 string of 32-44 chars that decodes to a 32-byte key."""
    if not isinstance(address, str):
        return False
    if not (MIN_ADDRESS_LEN <= len(address) <= MAX_ADDRESS_LEN):
        return False
    if not BASE58_RE.match(address):
        return False
    try:
        Pubkey.from_string(address)
    except ValueError:
        return False
    return True


@dataclass(frozen=True)
class TokenIdentity:
    """Opaque, immutable mint address."""

    address: str

    @classmethod
    def parse(cls, raw: object) -> "TokenIdentity":
        """Validate raw input; raise ValidationError on anything but a well-formed address."""
        address = raw.strip() if isinstance(raw, str) else raw
        if not is_valid_address(address):
            raise ValidationError(f"Invalid token address: {raw!r}")
        return cls(address)

    def __str__(self) -> str:
        return self.address
