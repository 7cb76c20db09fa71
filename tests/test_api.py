"""
Tests for the HTTP surface.

Uses FastAPI's TestClient against an app wired to the seeded in-memory storage.
"""

import base64

import pytest
from fastapi.testclient import TestClient

from yeahbuddy.api.app import create_app

ROOT = ("root", "root-password")
VIEWER = ("viewer", "viewer-password")


@pytest.fixture
def client(settings, storage):
    app = create_app(settings=settings, storage=storage)
    with TestClient(app) as client:
        yield client


def issue(client, tutor_id=42, stage_id=1, team_ids=(100,)):
    response = client.post(
        "/tokens",
        json={"tutor_id": tutor_id, "stage_id": stage_id, "team_ids": list(team_ids)},
        auth=ROOT,
    )
    assert response.status_code == 201, response.text
    return response.json()["token"]


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


# =============================================================================
# Health and identity
# =============================================================================


class TestBasics:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_me_as_administrator(self, client):
        response = client.get("/me", auth=VIEWER)

        assert response.status_code == 200
        assert response.json()["kind"] == "administrator"
        assert response.json()["permissions"] == ["ViewReport"]

    def test_me_as_token(self, client):
        token = issue(client, stage_id=2, team_ids=(5, 7))
        body = client.get("/me", headers=bearer(token)).json()

        assert body == {
            "kind": "token",
            "id": 42,
            "stage_id": 2,
            "team_ids": [5, 7],
            "permissions": None,
        }

    def test_token_query_parameter(self, client):
        token = issue(client)
        assert client.get(f"/me?token={token}").status_code == 200

    def test_no_credentials(self, client):
        response = client.get("/me")
        assert response.status_code == 403
        assert response.json() == {"detail": "access denied"}

    def test_wrong_password(self, client):
        response = client.get("/me", auth=("root", "nope"))
        assert response.status_code == 403
        assert response.json() == {"detail": "access denied"}

    @pytest.mark.parametrize("header", [
        "Basic !!!not-base64!!!",
        "Basic " + base64.b64encode(b"no-separator").decode(),
        "Basic " + base64.b64encode(b"\xff\xfe:\xfd").decode(),
    ])
    def test_malformed_basic_header(self, client, header):
        response = client.get("/me", headers={"Authorization": header})

        assert response.status_code == 403
        assert response.json() == {"detail": "access denied"}


# =============================================================================
# Tokens
# =============================================================================


class TestTokenRoutes:
    def test_issue_requires_manage_token(self, client):
        response = client.post("/tokens", json={"tutor_id": 42, "stage_id": 1, "team_ids": [100]}, auth=VIEWER)
        assert response.status_code == 403
        assert response.json() == {"detail": "access denied"}

    def test_issue_empty_teams(self, client):
        response = client.post("/tokens", json={"tutor_id": 42, "stage_id": 1, "team_ids": []}, auth=ROOT)

        assert response.status_code == 400
        assert response.json()["reason"] == "token.teams.empty"
        assert client.get("/tokens", auth=ROOT).json() == []

    def test_list_and_revoke(self, client):
        token = issue(client)

        active = client.get("/tokens", auth=ROOT).json()
        assert [t["token"] for t in active] == [token]

        response = client.post("/tokens/revoke", json={"token": token}, auth=ROOT)
        assert response.status_code == 200
        assert response.json()["revoked"] is True
        assert token not in response.json()["token"]

        assert client.get("/tokens", auth=ROOT).json() == []
        revoked = client.get("/tokens?revoked=true", auth=ROOT).json()
        assert len(revoked) == 1
        assert revoked[0]["revoked_at"] is not None

        # The revoked token no longer authenticates
        assert client.get("/me", headers=bearer(token)).status_code == 403

    def test_revoke_unknown(self, client):
        response = client.post("/tokens/revoke", json={"token": "C" * 43}, auth=ROOT)
        assert response.status_code == 404

    def test_revoke_keeps_token_out_of_the_url(self, client):
        token = issue(client)
        paths = [route.path for route in client.app.routes]

        assert "/tokens/revoke" in paths
        assert not any("{token}" in path for path in paths)
        response = client.post("/tokens/revoke", json={"token": token}, auth=VIEWER)
        assert response.status_code == 403


# =============================================================================
# Reviews
# =============================================================================


class TestReviewRoutes:
    def test_tutor_flow(self, client):
        token = issue(client)
        url = "/reviews/100/1/42"

        response = client.put(url, json={"rank": 8, "text": "Nice"}, headers=bearer(token))
        assert response.status_code == 200
        assert response.json()["submitted"] is False

        response = client.post(f"{url}/submit", headers=bearer(token))
        assert response.status_code == 200
        assert response.json()["submitted"] is True

        response = client.put(url, json={"rank": 9}, headers=bearer(token))
        assert response.status_code == 409
        assert response.json()["reason"] == "review.submitted"

        assert client.get(url, headers=bearer(token)).json()["rank"] == 8

    def test_open_creates_unscored(self, client):
        token = issue(client)
        response = client.post("/reviews/100/1/42/open", headers=bearer(token))

        assert response.status_code == 200
        assert response.json()["rank"] is None

    def test_out_of_scope_looks_like_bad_token(self, client):
        token = issue(client, stage_id=2, team_ids=(5, 7))

        out_of_scope = client.put("/reviews/9/2/42", json={"rank": 1}, headers=bearer(token))
        wrong_stage = client.put("/reviews/5/3/42", json={"rank": 1}, headers=bearer(token))
        bad_token = client.put("/reviews/5/2/42", json={"rank": 1}, headers=bearer("x" * 40))

        for response in (out_of_scope, wrong_stage, bad_token):
            assert response.status_code == 403
            assert response.json() == {"detail": "access denied"}

    def test_missing_review(self, client):
        token = issue(client)
        response = client.get("/reviews/100/1/42", headers=bearer(token))

        assert response.status_code == 404
        assert response.json()["reason"] == "review.not_found"

    def test_aggregate_listing(self, client):
        token = issue(client)
        client.put("/reviews/100/1/42", json={"rank": 8}, headers=bearer(token))
        client.put("/reviews/100/1/1?viewer_is_admin=true", json={"rank": 6}, auth=ROOT)

        response = client.get("/reviews/100/1", auth=VIEWER)

        assert response.status_code == 200
        assert [(r["viewer_id"], r["viewer_is_admin"]) for r in response.json()] == [(42, False), (1, True)]

    def test_listing_not_available_to_tokens(self, client):
        token = issue(client)
        assert client.get("/reviews/100/1", headers=bearer(token)).status_code == 403


# =============================================================================
# Accounts
# =============================================================================


class TestAccountRoutes:
    def test_register_tutor(self, client):
        response = client.post(
            "/tutors",
            json={"username": "tutor43", "password": "long-enough-pw", "email": "t43@example.com"},
            auth=ROOT,
        )

        assert response.status_code == 201
        assert "password_hash" not in response.json()
        assert [t["username"] for t in client.get("/tutors", auth=ROOT).json()] == ["tutor42", "tutor43"]

    def test_delete_tutor_invalidates_tokens(self, client):
        token = issue(client)
        assert client.delete("/tutors/42", auth=ROOT).status_code == 204
        assert client.get("/me", headers=bearer(token)).status_code == 403

    def test_register_administrator_subset(self, client):
        response = client.post(
            "/administrators",
            json={"name": "auditor", "password": "long-enough-pw", "permissions": ["ViewReport"]},
            auth=ROOT,
        )
        assert response.status_code == 201
        assert response.json()["permissions"] == ["ViewReport"]

        assert client.get("/me", auth=("auditor", "long-enough-pw")).status_code == 200

    def test_change_own_password(self, client):
        response = client.post(
            "/administrators/2/password",
            json={"old_password": "viewer-password", "new_password": "another-password"},
            auth=VIEWER,
        )
        assert response.status_code == 200
        assert client.get("/me", auth=("viewer", "another-password")).status_code == 200
