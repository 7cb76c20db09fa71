"""
Tests for settings and directory seed loading.
"""

import pytest

from yeahbuddy.auth.passwords import verify_password
from yeahbuddy.config import Settings
from yeahbuddy.config_loader import DirectoryLoader, load_directory
from yeahbuddy.core.models import AdministratorPermission
from yeahbuddy.storage import create_local_storage

SEED = """
administrators:
  - id: 1
    name: root
    password: change-me
    permissions: [ManageToken, ViewReport]
tutors:
  - id: 42
    username: tutor42
    password: secret
    email: tutor42@example.com
  - id: 43
    username: tutor43
    password_hash: "c2FsdA==$aGFzaA=="
teams:
  - {id: 100, name: Team Rocket}
stages:
  - {id: 1, title: Midterm, end: 2030-01-01T00:00:00Z}
  - {id: 2, title: Final, end: "2030-06-01 12:00:00"}
"""


# =============================================================================
# Settings
# =============================================================================


class TestSettings:
    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.token_bytes == 32
        assert settings.tokens_expire_with_stage is True

    def test_token_bytes_floor(self):
        with pytest.raises(ValueError):
            Settings(token_bytes=8)

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("YEAHBUDDY_TOKEN_ISSUE_ATTEMPTS", "9")
        assert Settings().token_issue_attempts == 9

    def test_cors_origins_list(self):
        settings = Settings(cors_origins="http://a, http://b,")
        assert settings.cors_origins_list == ["http://a", "http://b"]

    def test_sweep_enabled(self):
        assert Settings(revocation_sweep_interval_seconds=60).sweep_enabled
        assert not Settings(revocation_sweep_interval_seconds=0).sweep_enabled


# =============================================================================
# DirectoryLoader
# =============================================================================


class TestDirectoryLoader:
    @pytest.mark.asyncio
    async def test_load_file(self, tmp_path):
        path = tmp_path / "seed.yaml"
        path.write_text(SEED)
        storage = create_local_storage()

        counts = await load_directory(storage.directory, path)

        assert counts == {"administrators": 1, "tutors": 2, "teams": 1, "stages": 2}

    @pytest.mark.asyncio
    async def test_passwords_hashed_on_load(self, tmp_path):
        path = tmp_path / "seed.yaml"
        path.write_text(SEED)
        storage = create_local_storage()
        await load_directory(storage.directory, path)

        admin = await storage.directory.get_administrator_by_name("root")
        assert admin.permissions == {AdministratorPermission.MANAGE_TOKEN, AdministratorPermission.VIEW_REPORT}
        assert "change-me" not in admin.password_hash
        assert verify_password("change-me", admin.password_hash)

        kept = await storage.directory.get_tutor(43)
        assert kept.password_hash == "c2FsdA==$aGFzaA=="

    @pytest.mark.asyncio
    async def test_stage_times_are_utc(self, tmp_path):
        path = tmp_path / "seed.yaml"
        path.write_text(SEED)
        storage = create_local_storage()
        await load_directory(storage.directory, path)

        for stage in await storage.directory.list_stages():
            assert stage.end.tzinfo is not None
            assert not stage.has_ended()

    @pytest.mark.asyncio
    async def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        counts = await DirectoryLoader(create_local_storage().directory).load_file(path)
        assert sum(counts.values()) == 0

    @pytest.mark.asyncio
    async def test_unknown_permission(self):
        loader = DirectoryLoader(create_local_storage().directory)
        with pytest.raises(ValueError):
            await loader.load_dict({
                "administrators": [{"id": 1, "name": "x", "password": "pw", "permissions": ["Everything"]}],
            })
