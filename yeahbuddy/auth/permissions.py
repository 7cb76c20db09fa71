"""
Actions and the permissions they require.

This defines WHAT each operation needs, not HOW we check it.
The actual checking happens in policies.py.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable

from yeahbuddy.core.models import AdministratorPermission


class Action(str, Enum):
    """Operations guarded by the policy evaluator."""

    # Reviews
    REVIEW_READ = "review.read"
    REVIEW_WRITE = "review.write"
    REVIEW_LIST = "review.list"

    # Access tokens
    TOKEN_ISSUE = "token.issue"
    TOKEN_REVOKE = "token.revoke"
    TOKEN_LIST = "token.list"

    # Accounts
    ADMINISTRATOR_REGISTER = "administrator.register"
    ADMINISTRATOR_UPDATE = "administrator.update"
    TUTOR_MANAGE = "tutor.manage"
    TUTOR_RESET_PASSWORD = "tutor.reset_password"


# =============================================================================
# Permission Mappings
# =============================================================================


P = AdministratorPermission

# Every listed permission is required.
ACTION_PERMISSIONS: dict[Action, frozenset[AdministratorPermission]] = {
    Action.REVIEW_READ: frozenset({P.VIEW_REPORT}),
    Action.REVIEW_WRITE: frozenset({P.MANAGE_REVIEW}),
    Action.REVIEW_LIST: frozenset({P.VIEW_REPORT}),
    Action.TOKEN_ISSUE: frozenset({P.MANAGE_TOKEN}),
    Action.TOKEN_REVOKE: frozenset({P.MANAGE_TOKEN}),
    Action.TOKEN_LIST: frozenset({P.MANAGE_TOKEN}),
    Action.ADMINISTRATOR_REGISTER: frozenset({P.REGISTER_ADMINISTRATOR}),
    Action.ADMINISTRATOR_UPDATE: frozenset({P.MANAGE_ADMINISTRATOR}),
    Action.TUTOR_MANAGE: frozenset({P.MANAGE_TUTOR}),
    Action.TUTOR_RESET_PASSWORD: frozenset({P.RESET_PASSWORD, P.MANAGE_TUTOR}),
}

# Actions an administrator may perform on themselves without the permission:
# their own profile, or a review written under their own administrator identity.
SELF_SERVICE_ACTIONS: frozenset[Action] = frozenset({
    Action.ADMINISTRATOR_UPDATE,
    Action.REVIEW_READ,
    Action.REVIEW_WRITE,
})

# The only actions a token-scoped principal can ever be admitted to.
TOKEN_ACTIONS: frozenset[Action] = frozenset({
    Action.REVIEW_READ,
    Action.REVIEW_WRITE,
})


def required_permissions(action: Action | str) -> frozenset[AdministratorPermission]:
    """Permissions an administrator needs for an action."""
    if isinstance(action, str):
        action = Action(action)
    return ACTION_PERMISSIONS.get(action, frozenset())


def parse_permissions(names: Iterable[str | AdministratorPermission]) -> set[AdministratorPermission]:
    """
    Parse literal permission names.

    Raises ValueError on an unknown name; the set is closed.
    """
    return {AdministratorPermission(name) for name in names}
