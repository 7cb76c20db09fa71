"""
Core data models.

Reviews and access tokens are owned by this service. Tutors, administrators,
teams and stages belong to the surrounding directory; they are modelled only as
far as review access needs them.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from yeahbuddy.core.utils import utc_now


# =============================================================================
# Enums
# =============================================================================


class AdministratorPermission(str, Enum):
    """
    Named capabilities an administrator can hold.

    Values are persisted and serialized as-is; renaming one is a breaking change.
    """

    REGISTER_ADMINISTRATOR = "RegisterAdministrator"
    MANAGE_ADMINISTRATOR = "ManageAdministrator"
    MANAGE_TUTOR = "ManageTutor"
    MANAGE_TOKEN = "ManageToken"
    CREATE_TASK = "CreateTask"
    VIEW_REPORT = "ViewReport"
    RESET_PASSWORD = "ResetPassword"
    MANAGE_REVIEW = "ManageReview"


# =============================================================================
# Directory entities
# =============================================================================


class Tutor(BaseModel):
    """An external evaluator."""

    id: int
    username: str
    password_hash: str = Field(repr=False)
    display_name: str = ""
    email: EmailStr | None = None
    phone: str | None = None


class Administrator(BaseModel):
    """A staff account with a subset of the administrator permissions."""

    id: int
    name: str
    password_hash: str = Field(repr=False)
    permissions: set[AdministratorPermission] = Field(default_factory=set)


class Team(BaseModel):
    id: int
    name: str


class Stage(BaseModel):
    """A timed evaluation phase."""

    id: int
    title: str = ""
    start: datetime | None = None
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        # Naive timestamps from seed files are taken as UTC.
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def has_ended(self, now: datetime | None = None) -> bool:
        return (now or utc_now()) >= self.end


# =============================================================================
# Reviews
# =============================================================================


class ReviewKey(BaseModel):
    """
    Identity of a review: one per (team, stage, viewer, viewer kind).

    Frozen, so equality and hashing are structural over all four fields.
    """

    model_config = ConfigDict(frozen=True)

    team_id: int
    stage_id: int
    viewer_id: int
    viewer_is_admin: bool = False


class Review(BaseModel):
    """
    A viewer's scored review of one team for one stage.

    ``rank`` stays unset until the viewer scores the team. Once ``submitted``
    is true the score and text are final.
    """

    team_id: int
    stage_id: int
    viewer_id: int
    viewer_is_admin: bool = False

    rank: int | None = None
    text: str | None = None
    submitted: bool = False

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def for_key(cls, key: ReviewKey) -> Review:
        return cls(
            team_id=key.team_id,
            stage_id=key.stage_id,
            viewer_id=key.viewer_id,
            viewer_is_admin=key.viewer_is_admin,
        )

    @property
    def key(self) -> ReviewKey:
        return ReviewKey(
            team_id=self.team_id,
            stage_id=self.stage_id,
            viewer_id=self.viewer_id,
            viewer_is_admin=self.viewer_is_admin,
        )


# =============================================================================
# Access tokens
# =============================================================================


class Token(BaseModel):
    """
    A scoped review capability handed to a tutor.

    The team set is fixed at issuance. ``revoked`` only ever goes from false
    to true; revoked tokens are kept as history.
    """

    id: str = Field(repr=False)
    tutor_id: int
    stage_id: int
    team_ids: frozenset[int]

    revoked: bool = False
    created_at: datetime = Field(default_factory=utc_now)
    created_by: int | None = None  # issuing administrator
    revoked_at: datetime | None = None

    def revoke(self) -> None:
        if not self.revoked:
            self.revoked = True
            self.revoked_at = utc_now()


class TokenScope(BaseModel):
    """What a live token grants: one tutor, one stage, a fixed team allow-list."""

    model_config = ConfigDict(frozen=True)

    tutor_id: int
    stage_id: int
    team_ids: frozenset[int]
