"""
Storage abstraction layer.

All persistence goes through these interfaces. This allows swapping
implementations (in-memory → PostgreSQL, etc.) without changing the services.

Contract shared by every implementation:
- ``insert`` is a unique insert and raises ``DuplicateKeyError`` when the
  identity already exists. Services rely on it for first-write races and
  token identifier uniqueness.
- Returned models are copies; mutating them does not touch stored state
  until they are passed back to ``save``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel

from yeahbuddy.core.models import (
    Administrator,
    Review,
    ReviewKey,
    Stage,
    Team,
    Token,
    Tutor,
)


# =============================================================================
# Storage Interfaces
# =============================================================================


class ReviewStorage(ABC):
    """Review records keyed by ``ReviewKey``."""

    @abstractmethod
    async def get(self, key: ReviewKey) -> Review | None:
        """Get a review by identity."""
        pass

    @abstractmethod
    async def insert(self, review: Review) -> None:
        """Store a new review. Raises DuplicateKeyError if the identity exists."""
        pass

    @abstractmethod
    async def save(self, review: Review) -> None:
        """Replace an existing review."""
        pass

    @abstractmethod
    async def query(
        self,
        team_id: int | None = None,
        stage_id: int | None = None,
    ) -> list[Review]:
        """Reviews matching the given team and/or stage."""
        pass


class TokenStorage(ABC):
    """Access tokens keyed by their opaque identifier."""

    @abstractmethod
    async def get(self, token_id: str) -> Token | None:
        pass

    @abstractmethod
    async def insert(self, token: Token) -> None:
        """Store a new token. Raises DuplicateKeyError if the identifier exists."""
        pass

    @abstractmethod
    async def save(self, token: Token) -> None:
        pass

    @abstractmethod
    async def query(
        self,
        revoked: bool | None = None,
        stage_id: int | None = None,
        tutor_id: int | None = None,
    ) -> list[Token]:
        """Tokens matching the filters, oldest first."""
        pass


class DirectoryStorage(ABC):
    """
    Accounts, teams and stages.

    These are owned by the wider platform; review access reads them and the
    account service maintains tutors and administrators.
    """

    # Tutors

    @abstractmethod
    async def get_tutor(self, tutor_id: int) -> Tutor | None:
        pass

    @abstractmethod
    async def get_tutor_by_username(self, username: str) -> Tutor | None:
        pass

    @abstractmethod
    async def list_tutors(self) -> list[Tutor]:
        pass

    @abstractmethod
    async def save_tutor(self, tutor: Tutor) -> None:
        pass

    @abstractmethod
    async def delete_tutor(self, tutor_id: int) -> bool:
        pass

    # Administrators

    @abstractmethod
    async def get_administrator(self, admin_id: int) -> Administrator | None:
        pass

    @abstractmethod
    async def get_administrator_by_name(self, name: str) -> Administrator | None:
        pass

    @abstractmethod
    async def save_administrator(self, admin: Administrator) -> None:
        pass

    # Teams and stages

    @abstractmethod
    async def get_team(self, team_id: int) -> Team | None:
        pass

    @abstractmethod
    async def save_team(self, team: Team) -> None:
        pass

    @abstractmethod
    async def get_stage(self, stage_id: int) -> Stage | None:
        pass

    @abstractmethod
    async def list_stages(self) -> list[Stage]:
        pass

    @abstractmethod
    async def save_stage(self, stage: Stage) -> None:
        pass

    @abstractmethod
    async def next_id(self, kind: str) -> int:
        """Allocate the next integer id for ``"tutor"`` or ``"administrator"``."""
        pass


# =============================================================================
# Storage Provider (dependency injection container)
# =============================================================================


class StorageProvider(BaseModel):
    """
    Container for all storage backends.

    Initialize once at app startup with appropriate implementations.
    Services receive this and use the interfaces without knowing
    the underlying implementation.
    """

    model_config = {"arbitrary_types_allowed": True}

    reviews: ReviewStorage
    tokens: TokenStorage
    directory: DirectoryStorage
