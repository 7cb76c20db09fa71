"""
Core module - data models and shared infrastructure.

This module contains:
- models: Reviews, access tokens and the directory entities they reference
- errors: The error taxonomy surfaced to callers
- locks: Per-identity locking for read-check-write sequences
- utils: Shared utility functions
"""

from yeahbuddy.core.models import (
    AdministratorPermission,
    Administrator,
    Tutor,
    Team,
    Stage,
    Review,
    ReviewKey,
    Token,
    TokenScope,
)

from yeahbuddy.core.errors import (
    ACCESS_DENIED,
    YeahBuddyError,
    UnauthenticatedError,
    ForbiddenError,
    NotFoundError,
    AlreadySubmittedError,
    InvalidArgumentError,
    DuplicateKeyError,
)

from yeahbuddy.core.locks import KeyedLocks

from yeahbuddy.core.utils import (
    redact_query_tokens,
    redact_token,
    utc_now,
)

__all__ = [
    # Models
    "AdministratorPermission",
    "Administrator",
    "Tutor",
    "Team",
    "Stage",
    "Review",
    "ReviewKey",
    "Token",
    "TokenScope",
    # Errors
    "ACCESS_DENIED",
    "YeahBuddyError",
    "UnauthenticatedError",
    "ForbiddenError",
    "NotFoundError",
    "AlreadySubmittedError",
    "InvalidArgumentError",
    "DuplicateKeyError",
    # Locks
    "KeyedLocks",
    # Utils
    "redact_query_tokens",
    "redact_token",
    "utc_now",
]
