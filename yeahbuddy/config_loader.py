"""
Directory seed loader.

Loads administrators, tutors, teams and stages from a YAML file into the
directory storage. Used at startup for development environments and by tests.

Example file:

    administrators:
      - id: 1
        name: root
        password: change-me
        permissions: [ManageToken, ViewReport, RegisterAdministrator]
    tutors:
      - id: 42
        username: tutor42
        password: secret
    teams:
      - {id: 100, name: Team Rocket}
    stages:
      - {id: 1, title: Midterm, end: 2030-01-01T00:00:00Z}
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from yeahbuddy.auth.passwords import hash_password
from yeahbuddy.auth.permissions import parse_permissions
from yeahbuddy.core.models import Administrator, Stage, Team, Tutor
from yeahbuddy.storage.base import DirectoryStorage

logger = logging.getLogger(__name__)


class DirectoryLoader:
    """
    Loads seed files and saves their entries into a directory.

    Accounts may carry either a plain ``password`` (hashed on load) or a
    ready ``password_hash``.
    """

    def __init__(self, directory: DirectoryStorage):
        self.directory = directory

    async def load_file(self, path: Path | str) -> dict[str, int]:
        """
        Load a YAML seed file.

        Returns:
            Dict with counts of each type loaded
        """
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        counts = await self.load_dict(data)
        logger.info(f"Loaded directory seed {path}: {counts}")
        return counts

    async def load_dict(self, data: dict[str, Any]) -> dict[str, int]:
        counts = {
            "administrators": 0,
            "tutors": 0,
            "teams": 0,
            "stages": 0,
        }

        for entry in data.get("administrators", []):
            entry = self._with_hash(entry)
            entry["permissions"] = parse_permissions(entry.get("permissions", []))
            await self.directory.save_administrator(Administrator.model_validate(entry))
            counts["administrators"] += 1

        for entry in data.get("tutors", []):
            await self.directory.save_tutor(Tutor.model_validate(self._with_hash(entry)))
            counts["tutors"] += 1

        for entry in data.get("teams", []):
            await self.directory.save_team(Team.model_validate(entry))
            counts["teams"] += 1

        for entry in data.get("stages", []):
            await self.directory.save_stage(Stage.model_validate(entry))
            counts["stages"] += 1

        return counts

    @staticmethod
    def _with_hash(entry: dict[str, Any]) -> dict[str, Any]:
        entry = dict(entry)
        password = entry.pop("password", None)
        if password is not None and "password_hash" not in entry:
            entry["password_hash"] = hash_password(str(password))
        return entry


async def load_directory(directory: DirectoryStorage, path: Path | str) -> dict[str, int]:
    """
    Convenience function to load a seed file.

    Returns:
        Dict with counts of each type loaded
    """
    loader = DirectoryLoader(directory)
    return await loader.load_file(path)
