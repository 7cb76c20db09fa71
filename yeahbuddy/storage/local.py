"""
Local storage implementations for development and tests.

In-memory implementations that work without any external services.
Each method body runs without awaiting, so every call is atomic with respect
to other coroutines on the same event loop.
"""

from __future__ import annotations

from collections import defaultdict

from yeahbuddy.core.errors import DuplicateKeyError
from yeahbuddy.core.models import (
    Administrator,
    Review,
    ReviewKey,
    Stage,
    Team,
    Token,
    Tutor,
)
from yeahbuddy.core.utils import utc_now
from yeahbuddy.storage.base import (
    DirectoryStorage,
    ReviewStorage,
    StorageProvider,
    TokenStorage,
)


# =============================================================================
# In-Memory Review Storage
# =============================================================================


class InMemoryReviewStorage(ReviewStorage):
    """Reviews held in a dict keyed by ``ReviewKey``."""

    def __init__(self):
        self._data: dict[ReviewKey, Review] = {}

    async def get(self, key: ReviewKey) -> Review | None:
        review = self._data.get(key)
        return review.model_copy(deep=True) if review else None

    async def insert(self, review: Review) -> None:
        key = review.key
        if key in self._data:
            raise DuplicateKeyError("review.exists", key)
        self._data[key] = review.model_copy(deep=True)

    async def save(self, review: Review) -> None:
        review.updated_at = utc_now()
        self._data[review.key] = review.model_copy(deep=True)

    async def query(
        self,
        team_id: int | None = None,
        stage_id: int | None = None,
    ) -> list[Review]:
        results = []
        for key, review in self._data.items():
            if team_id is not None and key.team_id != team_id:
                continue
            if stage_id is not None and key.stage_id != stage_id:
                continue
            results.append(review.model_copy(deep=True))
        return results


# =============================================================================
# In-Memory Token Storage
# =============================================================================


class InMemoryTokenStorage(TokenStorage):
    """Tokens held in an insertion-ordered dict keyed by identifier."""

    def __init__(self):
        self._data: dict[str, Token] = {}

    async def get(self, token_id: str) -> Token | None:
        token = self._data.get(token_id)
        return token.model_copy(deep=True) if token else None

    async def insert(self, token: Token) -> None:
        if token.id in self._data:
            raise DuplicateKeyError("token.exists")
        self._data[token.id] = token.model_copy(deep=True)

    async def save(self, token: Token) -> None:
        self._data[token.id] = token.model_copy(deep=True)

    async def query(
        self,
        revoked: bool | None = None,
        stage_id: int | None = None,
        tutor_id: int | None = None,
    ) -> list[Token]:
        results = []
        for token in self._data.values():
            if revoked is not None and token.revoked != revoked:
                continue
            if stage_id is not None and token.stage_id != stage_id:
                continue
            if tutor_id is not None and token.tutor_id != tutor_id:
                continue
            results.append(token.model_copy(deep=True))
        results.sort(key=lambda t: t.created_at)
        return results

    def __len__(self) -> int:
        return len(self._data)


# =============================================================================
# In-Memory Directory Storage
# =============================================================================


class InMemoryDirectoryStorage(DirectoryStorage):
    """In-memory accounts, teams and stages."""

    def __init__(self):
        self._tutors: dict[int, Tutor] = {}
        self._administrators: dict[int, Administrator] = {}
        self._teams: dict[int, Team] = {}
        self._stages: dict[int, Stage] = {}
        self._sequences: dict[str, int] = defaultdict(int)

    # Tutors

    async def get_tutor(self, tutor_id: int) -> Tutor | None:
        tutor = self._tutors.get(tutor_id)
        return tutor.model_copy(deep=True) if tutor else None

    async def get_tutor_by_username(self, username: str) -> Tutor | None:
        for tutor in self._tutors.values():
            if tutor.username == username:
                return tutor.model_copy(deep=True)
        return None

    async def list_tutors(self) -> list[Tutor]:
        return [t.model_copy(deep=True) for _, t in sorted(self._tutors.items())]

    async def save_tutor(self, tutor: Tutor) -> None:
        self._tutors[tutor.id] = tutor.model_copy(deep=True)
        self._bump("tutor", tutor.id)

    async def delete_tutor(self, tutor_id: int) -> bool:
        return self._tutors.pop(tutor_id, None) is not None

    # Administrators

    async def get_administrator(self, admin_id: int) -> Administrator | None:
        admin = self._administrators.get(admin_id)
        return admin.model_copy(deep=True) if admin else None

    async def get_administrator_by_name(self, name: str) -> Administrator | None:
        for admin in self._administrators.values():
            if admin.name == name:
                return admin.model_copy(deep=True)
        return None

    async def save_administrator(self, admin: Administrator) -> None:
        self._administrators[admin.id] = admin.model_copy(deep=True)
        self._bump("administrator", admin.id)

    # Teams and stages

    async def get_team(self, team_id: int) -> Team | None:
        team = self._teams.get(team_id)
        return team.model_copy() if team else None

    async def save_team(self, team: Team) -> None:
        self._teams[team.id] = team.model_copy()

    async def get_stage(self, stage_id: int) -> Stage | None:
        stage = self._stages.get(stage_id)
        return stage.model_copy() if stage else None

    async def list_stages(self) -> list[Stage]:
        return [s.model_copy() for _, s in sorted(self._stages.items())]

    async def save_stage(self, stage: Stage) -> None:
        self._stages[stage.id] = stage.model_copy()

    async def next_id(self, kind: str) -> int:
        self._sequences[kind] += 1
        return self._sequences[kind]

    def _bump(self, kind: str, used_id: int) -> None:
        # Keep allocated ids ahead of explicitly seeded ones.
        if used_id > self._sequences[kind]:
            self._sequences[kind] = used_id


# =============================================================================
# Factory
# =============================================================================


def create_local_storage() -> StorageProvider:
    """Create a StorageProvider with in-memory implementations."""
    return StorageProvider(
        reviews=InMemoryReviewStorage(),
        tokens=InMemoryTokenStorage(),
        directory=InMemoryDirectoryStorage(),
    )
