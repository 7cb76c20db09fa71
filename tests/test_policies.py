"""
Tests for the policy evaluator and permission tables.
"""

import pytest

from yeahbuddy.auth.context import AdministratorPrincipal, TokenPrincipal
from yeahbuddy.auth.permissions import (
    ACTION_PERMISSIONS,
    Action,
    parse_permissions,
    required_permissions,
)
from yeahbuddy.auth.policies import AccessRequest, PolicyEvaluator
from yeahbuddy.core.errors import ACCESS_DENIED, ForbiddenError
from yeahbuddy.core.models import AdministratorPermission, ReviewKey

P = AdministratorPermission


@pytest.fixture
def token_principal():
    return TokenPrincipal(tutor_id=42, stage_id=2, team_ids=frozenset({5, 7}))


def review(team_id, stage_id, viewer_id, viewer_is_admin=False, action=Action.REVIEW_WRITE):
    key = ReviewKey(team_id=team_id, stage_id=stage_id, viewer_id=viewer_id, viewer_is_admin=viewer_is_admin)
    return AccessRequest.for_review(action, key)


# =============================================================================
# Permission table
# =============================================================================


class TestPermissions:
    def test_every_action_mapped(self):
        assert set(ACTION_PERMISSIONS) == set(Action)

    def test_reset_password_needs_both(self):
        assert required_permissions(Action.TUTOR_RESET_PASSWORD) == {P.RESET_PASSWORD, P.MANAGE_TUTOR}

    def test_lookup_by_value(self):
        assert required_permissions("token.issue") == {P.MANAGE_TOKEN}

    def test_parse_literal_names(self):
        assert parse_permissions(["ManageToken", "ViewReport"]) == {P.MANAGE_TOKEN, P.VIEW_REPORT}

    def test_parse_unknown_name(self):
        with pytest.raises(ValueError):
            parse_permissions(["ManageEverything"])

    def test_names_are_stable(self):
        assert {p.value for p in P} == {
            "RegisterAdministrator",
            "ManageAdministrator",
            "ManageTutor",
            "ManageToken",
            "CreateTask",
            "ViewReport",
            "ResetPassword",
            "ManageReview",
        }


# =============================================================================
# Token path
# =============================================================================


class TestTokenPolicy:
    @pytest.mark.parametrize("team_id", [5, 7])
    def test_admits_scoped_writes(self, policy, token_principal, team_id):
        assert policy.allows(token_principal, review(team_id, 2, 42))

    @pytest.mark.parametrize("team_id,stage_id,viewer_id,viewer_is_admin", [
        (9, 2, 42, False),   # team outside scope
        (5, 3, 42, False),   # stage outside scope
        (5, 2, 43, False),   # another viewer
        (5, 2, 42, True),    # administrator identity with the same id
    ])
    def test_denies_outside_scope(self, policy, token_principal, team_id, stage_id, viewer_id, viewer_is_admin):
        assert not policy.allows(token_principal, review(team_id, stage_id, viewer_id, viewer_is_admin))

    @pytest.mark.parametrize("action", [
        Action.REVIEW_LIST,
        Action.TOKEN_ISSUE,
        Action.TOKEN_REVOKE,
        Action.TUTOR_MANAGE,
        Action.ADMINISTRATOR_UPDATE,
    ])
    def test_no_administrative_actions(self, policy, token_principal, action):
        request = AccessRequest(action=action, team_id=5, stage_id=2, viewer_id=42, subject_id=42)
        assert not policy.allows(token_principal, request)

    def test_covers(self, token_principal):
        assert token_principal.covers(5, 2)
        assert not token_principal.covers(5, 1)
        assert not token_principal.covers(9, 2)


# =============================================================================
# Administrator path
# =============================================================================


class TestAdministratorPolicy:
    def test_permission_admits(self, policy):
        admin = AdministratorPrincipal(admin_id=1, name="a", permissions=frozenset({P.MANAGE_TOKEN}))
        assert policy.allows(admin, AccessRequest(action=Action.TOKEN_ISSUE))

    def test_missing_permission_denies(self, policy, bare_admin):
        assert not policy.allows(bare_admin, AccessRequest(action=Action.TOKEN_ISSUE))

    def test_partial_permissions_deny(self, policy):
        admin = AdministratorPrincipal(admin_id=1, name="a", permissions=frozenset({P.RESET_PASSWORD}))
        assert not policy.allows(admin, AccessRequest(action=Action.TUTOR_RESET_PASSWORD))

    def test_self_service_profile(self, policy, bare_admin):
        assert policy.allows(bare_admin, AccessRequest(action=Action.ADMINISTRATOR_UPDATE, subject_id=3))
        assert not policy.allows(bare_admin, AccessRequest(action=Action.ADMINISTRATOR_UPDATE, subject_id=1))

    def test_self_service_review(self, policy, bare_admin):
        assert policy.allows(bare_admin, review(5, 2, 3, viewer_is_admin=True))
        assert policy.allows(bare_admin, review(5, 2, 3, viewer_is_admin=True, action=Action.REVIEW_READ))
        # Tutor 3 is not administrator 3
        assert not policy.allows(bare_admin, review(5, 2, 3, viewer_is_admin=False))

    def test_self_service_not_for_other_actions(self, policy, bare_admin):
        assert not policy.allows(bare_admin, AccessRequest(action=Action.TUTOR_MANAGE, subject_id=3))

    def test_can_grant_subset_only(self, viewer_admin):
        assert viewer_admin.can_grant({P.VIEW_REPORT})
        assert viewer_admin.can_grant(set())
        assert not viewer_admin.can_grant({P.VIEW_REPORT, P.MANAGE_TOKEN})

    def test_can_by_name(self, viewer_admin):
        assert viewer_admin.can("ViewReport")
        assert not viewer_admin.can("NoSuchPermission")


# =============================================================================
# Denial signal
# =============================================================================


class TestAuthorize:
    def test_no_principal(self, policy):
        allowed, reason = policy.check(None, AccessRequest(action=Action.REVIEW_READ))
        assert not allowed
        assert reason

    def test_every_denial_is_identical(self, policy, token_principal):
        errors = []
        for request in (review(9, 2, 42), review(5, 3, 42), review(5, 2, 43)):
            with pytest.raises(ForbiddenError) as exc:
                policy.authorize(token_principal, request)
            errors.append((str(exc.value), exc.value.public_message))

        assert len(set(errors)) == 1
        assert errors[0][1] == ACCESS_DENIED

    def test_authorize_passes_silently(self):
        admin = AdministratorPrincipal(admin_id=1, name="a", permissions=frozenset({P.VIEW_REPORT}))
        assert PolicyEvaluator().authorize(admin, AccessRequest(action=Action.REVIEW_LIST)) is None
