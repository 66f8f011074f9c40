"""
Core utilities: error taxonomy and token identity validation.

Shared by the listener, analysis engine, RPC clients and agent worker.
"""

from mintwatch.core.exceptions import (
    CollaboratorError,
    CollaboratorFailure,
    CollaboratorTimeout,
    CollaboratorUnavailable,
    MintWatchError,
    RateLimitExceeded,
    ValidationError,
)
from mintwatch.core.identity import TokenIdentity, is_valid_address

__all__ = [
    "CollaboratorError",
    "CollaboratorFailure",
    "CollaboratorTimeout",
    "CollaboratorUnavailable",
    "MintWatchError",
    "RateLimitExceeded",
    "TokenIdentity",
    "ValidationError",
    "is_valid_address",
]
