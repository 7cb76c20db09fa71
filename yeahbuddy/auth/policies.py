"""
Policies - the authorization decision for every guarded operation.

Design:
- An operation is described as an ``AccessRequest``: an action plus the
  team/stage/viewer/subject it targets
- Administrators are admitted by permission set (``ACTION_PERMISSIONS``)
  or, for self-service actions, by being the target themselves
- Token principals are admitted only to review actions inside their scope,
  under their own viewer identity
- Every denial raises the same ``ForbiddenError``; the specific reason is
  logged, never returned
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from yeahbuddy.auth.context import AdministratorPrincipal, Principal, TokenPrincipal
from yeahbuddy.auth.permissions import (
    SELF_SERVICE_ACTIONS,
    TOKEN_ACTIONS,
    Action,
    required_permissions,
)
from yeahbuddy.core.errors import ACCESS_DENIED, ForbiddenError
from yeahbuddy.core.models import ReviewKey

logger = logging.getLogger(__name__)


# =============================================================================
# AccessRequest - what is being attempted
# =============================================================================


@dataclass(frozen=True)
class AccessRequest:
    """
    A requested operation and its target.

    ``subject_id`` names the account being edited for account actions;
    the review fields name the review identity for review actions.
    """

    action: Action
    team_id: int | None = None
    stage_id: int | None = None
    viewer_id: int | None = None
    viewer_is_admin: bool | None = None
    subject_id: int | None = None

    @classmethod
    def for_review(cls, action: Action, key: ReviewKey) -> AccessRequest:
        return cls(
            action=action,
            team_id=key.team_id,
            stage_id=key.stage_id,
            viewer_id=key.viewer_id,
            viewer_is_admin=key.viewer_is_admin,
        )


# =============================================================================
# PolicyEvaluator - the core authorization type
# =============================================================================


class PolicyEvaluator:
    """
    Decides admit/deny for a principal and an access request.

    Stateless; one instance can be shared by every service.
    """

    def check(self, actor: Principal | None, request: AccessRequest) -> tuple[bool, str | None]:
        """
        Check if the actor may perform the request.

        Returns: (allowed, internal_reason). The reason is for logs only.
        """
        if actor is None:
            return False, "no principal"

        if isinstance(actor, TokenPrincipal):
            return self._check_token(actor, request)

        if isinstance(actor, AdministratorPrincipal):
            return self._check_administrator(actor, request)

        return False, f"unsupported principal {type(actor).__name__}"

    def allows(self, actor: Principal | None, request: AccessRequest) -> bool:
        allowed, _ = self.check(actor, request)
        return allowed

    def authorize(self, actor: Principal | None, request: AccessRequest) -> None:
        """
        Raise ForbiddenError unless the actor may perform the request.

        The raised error is identical for every deny reason.
        """
        allowed, reason = self.check(actor, request)
        if not allowed:
            logger.warning(f"Denied {request.action.value} for {actor!r}: {reason}")
            raise ForbiddenError(ACCESS_DENIED)

    # -------------------------------------------------------------------------

    def _check_administrator(
        self,
        actor: AdministratorPrincipal,
        request: AccessRequest,
    ) -> tuple[bool, str | None]:
        required = required_permissions(request.action)
        if actor.can_all(*required):
            return True, None

        if request.action in SELF_SERVICE_ACTIONS and self._is_self(actor, request):
            return True, None

        missing = sorted(p.value for p in required if not actor.can(p))
        return False, f"missing permissions: {missing}"

    @staticmethod
    def _is_self(actor: AdministratorPrincipal, request: AccessRequest) -> bool:
        if request.subject_id is not None:
            return request.subject_id == actor.admin_id
        if request.viewer_id is not None:
            return bool(request.viewer_is_admin) and request.viewer_id == actor.admin_id
        return False

    @staticmethod
    def _check_token(actor: TokenPrincipal, request: AccessRequest) -> tuple[bool, str | None]:
        if request.action not in TOKEN_ACTIONS:
            return False, "action not available to token holders"
        if request.stage_id != actor.stage_id:
            return False, "stage outside token scope"
        if request.team_id not in actor.team_ids:
            return False, "team outside token scope"
        if request.viewer_is_admin or request.viewer_id != actor.tutor_id:
            return False, "viewer is not the token holder"
        return True, None
