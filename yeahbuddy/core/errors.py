"""
Error taxonomy.

Every failure a caller can observe is one of these exceptions. Each carries a
machine-readable ``reason`` code (``"review.submitted"``, ``"token.stage.not_found"``)
and the offending values, so the HTTP layer can render them without parsing
messages.
"""

from __future__ import annotations

from typing import Any

# What clients see for both authentication and authorization failures.
ACCESS_DENIED = "access denied"


class YeahBuddyError(Exception):
    """Base exception for all domain errors."""

    default_reason = "error"

    def __init__(self, reason: str | None = None, *values: Any):
        self.reason = reason or self.default_reason
        self.values = values
        detail = self.reason
        if values:
            detail = f"{self.reason}: {', '.join(str(v) for v in values)}"
        super().__init__(detail)

    @property
    def public_message(self) -> str:
        """Message safe to return to a client."""
        return str(self)


class UnauthenticatedError(YeahBuddyError):
    """Bad, missing, expired or revoked credential, or unknown principal."""

    default_reason = "unauthenticated"

    @property
    def public_message(self) -> str:
        return ACCESS_DENIED


class ForbiddenError(YeahBuddyError):
    """Authenticated, but outside the principal's scope or permissions."""

    default_reason = "forbidden"

    @property
    def public_message(self) -> str:
        return ACCESS_DENIED


class NotFoundError(YeahBuddyError):
    """A referenced team, stage, review, token or account does not exist."""

    default_reason = "not_found"


class AlreadySubmittedError(YeahBuddyError):
    """Mutation attempted on a finalized review."""

    default_reason = "review.submitted"


class InvalidArgumentError(YeahBuddyError):
    """Malformed request, e.g. an empty team set or unknown stage."""

    default_reason = "invalid_argument"


class DuplicateKeyError(YeahBuddyError):
    """Unique constraint violated in storage."""

    default_reason = "storage.duplicate"
