"""
Application-level exceptions.

Only ValidationError aborts an analysis. Collaborator errors are raised by the
RPC, swap and metadata clients and converted into CheckResults by the
orchestrator; a full queue is reported through a return value, never raised.
"""

from __future__ import annotations


class MintWatchError(Exception):
    """Base class for all MintWatch errors."""


class ValidationError(MintWatchError, ValueError):
    """Malformed token identity or request; no analysis is attempted."""


class CollaboratorError(MintWatchError):
    """Base class for failures of an external collaborator (RPC, swap API, metadata host)."""

    def __init__(self, message: str, *, source: str | None = None) -> None:
        super().__init__(message)
        self.source = source


class CollaboratorTimeout(CollaboratorError):
    """A collaborator call did not answer before its deadline."""


class CollaboratorFailure(CollaboratorError):
    """A collaborator answered with an error or an unusable payload."""

    def __init__(
        self,
        message: str,
        *,
        source: str | None = None,
        code: int | None = None,
    ) -> None:
        super().__init__(message, source=source)
        self.code = code


class CollaboratorUnavailable(CollaboratorFailure):
    """The collaborator could not be reached at all (connection refused, DNS, TLS)."""


class RateLimitExceeded(CollaboratorFailure):
    """The request scheduler's total credit ceiling has been reached."""

    def __init__(self, used: int, required: int, maximum: int) -> None:
        super().__init__(
            f"Credit limit exceeded. Used: {used}, Required: {required}, Max: {maximum}",
            source="scheduler",
        )
        self.used = used
        self.required = required
        self.maximum = maximum
