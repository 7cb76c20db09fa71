"""
Principals - the "who can touch what" for each request.

A principal is built fresh for every request and passed explicitly into every
service and policy call. Nothing here is stored or shared between requests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from yeahbuddy.core.models import Administrator, AdministratorPermission, TokenScope


@dataclass(frozen=True)
class AdministratorPrincipal:
    """
    An authenticated administrator and the permissions they hold.

    Usage:
        if actor.can(AdministratorPermission.MANAGE_TOKEN):
            ...
    """

    admin_id: int
    name: str
    permissions: frozenset[AdministratorPermission] = field(default_factory=frozenset)

    @property
    def is_administrator(self) -> bool:
        return True

    def can(self, permission: AdministratorPermission | str) -> bool:
        """Check if the administrator holds a permission."""
        if isinstance(permission, str):
            try:
                permission = AdministratorPermission(permission)
            except ValueError:
                return False
        return permission in self.permissions

    def can_all(self, *permissions: AdministratorPermission | str) -> bool:
        """Check if the administrator holds ALL of the permissions."""
        return all(self.can(p) for p in permissions)

    def can_grant(self, permissions: set[AdministratorPermission] | frozenset[AdministratorPermission]) -> bool:
        """An administrator may only hand out permissions they hold themselves."""
        return set(permissions) <= self.permissions

    @classmethod
    def from_administrator(cls, admin: Administrator) -> AdministratorPrincipal:
        return cls(
            admin_id=admin.id,
            name=admin.name,
            permissions=frozenset(admin.permissions),
        )


@dataclass(frozen=True)
class TokenPrincipal:
    """
    A tutor acting through an access token.

    Scoped to the stage and team allow-list baked into the token at issuance.
    Carries no administrator permissions, whatever else the tutor may be.
    """

    tutor_id: int
    stage_id: int
    team_ids: frozenset[int]
    token_hint: str = field(default="", repr=False)  # redacted token, for logs

    @property
    def is_administrator(self) -> bool:
        return False

    def can(self, permission: AdministratorPermission | str) -> bool:
        return False

    def covers(self, team_id: int, stage_id: int) -> bool:
        """Is (team, stage) inside this token's scope?"""
        return stage_id == self.stage_id and team_id in self.team_ids

    @classmethod
    def from_scope(cls, scope: TokenScope, token_hint: str = "") -> TokenPrincipal:
        return cls(
            tutor_id=scope.tutor_id,
            stage_id=scope.stage_id,
            team_ids=frozenset(scope.team_ids),
            token_hint=token_hint,
        )


Principal = Union[AdministratorPrincipal, TokenPrincipal]
