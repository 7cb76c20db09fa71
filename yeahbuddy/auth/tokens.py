# =============================================================================
# Token Registry
# =============================================================================
#
# Scoped access tokens for tutors:
#   - issue            (ManageToken)  -> new Token bound to tutor/stage/teams
#   - resolve          (no actor)     -> TokenScope or None, never raises
#   - revoke           (ManageToken)  -> marks revoked, row is kept
#   - list_active / list_revoked (ManageToken)
#   - revoke_expired   (system sweep) -> revokes tokens of ended stages
#
# =============================================================================

from __future__ import annotations

import logging
import re
import secrets
from datetime import datetime
from typing import Callable, Iterable

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, stop_after_attempt

from yeahbuddy.auth.context import Principal
from yeahbuddy.auth.permissions import Action
from yeahbuddy.auth.policies import AccessRequest, PolicyEvaluator
from yeahbuddy.config import Settings, get_settings
from yeahbuddy.core.errors import DuplicateKeyError, InvalidArgumentError, NotFoundError
from yeahbuddy.core.locks import KeyedLocks
from yeahbuddy.core.models import Token, TokenScope
from yeahbuddy.core.utils import redact_token, utc_now
from yeahbuddy.storage.base import StorageProvider

logger = logging.getLogger(__name__)

# URL-safe base64 alphabet; 22 characters is 16 random bytes.
TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]{22,256}$")


def is_well_formed(token: object) -> bool:
    """Cheap syntactic check before any storage lookup."""
    return isinstance(token, str) and TOKEN_PATTERN.fullmatch(token) is not None


def _log_collision(retry_state: RetryCallState) -> None:
    logger.warning(f"Token identifier collision, drawing a new one (attempt {retry_state.attempt_number})")


class TokenRegistry:
    """
    Issues, resolves and revokes access tokens.

    Identifiers come from ``secrets.token_urlsafe``. Uniqueness is enforced by
    the storage unique insert; a collision draws a fresh identifier and is
    never reported to the caller.
    """

    def __init__(
        self,
        storage: StorageProvider,
        policy: PolicyEvaluator | None = None,
        settings: Settings | None = None,
        token_factory: Callable[[], str] | None = None,
    ):
        self.storage = storage
        self.policy = policy or PolicyEvaluator()
        self.settings = settings or get_settings()
        self._token_factory = token_factory or self._random_token
        self._locks = KeyedLocks()

    def _random_token(self) -> str:
        return secrets.token_urlsafe(self.settings.token_bytes)

    # =========================================================================
    # Issue
    # =========================================================================

    async def issue(
        self,
        tutor_id: int,
        stage_id: int,
        team_ids: Iterable[int],
        actor: Principal,
    ) -> Token:
        """
        Issue a token granting ``tutor_id`` review access to ``team_ids`` in ``stage_id``.

        Raises:
            ForbiddenError: actor lacks ManageToken
            InvalidArgumentError: empty team set, unknown stage/tutor/team,
                or the stage has already ended
        """
        self.policy.authorize(actor, AccessRequest(action=Action.TOKEN_ISSUE))

        teams = frozenset(team_ids)
        await self._validate_issue(tutor_id, stage_id, teams)

        token = await self._insert_unique(
            tutor_id=tutor_id,
            stage_id=stage_id,
            team_ids=teams,
            created_by=getattr(actor, "admin_id", None),
        )
        logger.info(
            f"Issued token {redact_token(token.id)} for tutor {tutor_id}, "
            f"stage {stage_id}, teams {sorted(teams)}"
        )
        return token

    async def _validate_issue(self, tutor_id: int, stage_id: int, teams: frozenset[int]) -> None:
        directory = self.storage.directory

        if not teams:
            raise InvalidArgumentError("token.teams.empty")

        stage = await directory.get_stage(stage_id)
        if stage is None:
            raise InvalidArgumentError("token.stage.not_found", stage_id)
        if stage.has_ended():
            raise InvalidArgumentError("token.stage.ended", stage_id)

        if await directory.get_tutor(tutor_id) is None:
            raise InvalidArgumentError("token.tutor.not_found", tutor_id)

        for team_id in sorted(teams):
            if await directory.get_team(team_id) is None:
                raise InvalidArgumentError("token.team.not_found", team_id)

    async def _insert_unique(self, **fields) -> Token:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(DuplicateKeyError),
            stop=stop_after_attempt(self.settings.token_issue_attempts),
            before_sleep=_log_collision,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                token = Token(id=self._token_factory(), **fields)
                await self.storage.tokens.insert(token)
        return token

    # =========================================================================
    # Resolve
    # =========================================================================

    async def resolve(self, token: object) -> TokenScope | None:
        """
        Look up what a token grants.

        Returns None for anything that is not a live token: wrong type,
        malformed, unknown, or revoked. Never raises for bad input.
        """
        if not is_well_formed(token):
            logger.debug("Rejecting malformed token")
            return None

        stored = await self.storage.tokens.get(token)
        if stored is None or stored.revoked:
            logger.debug(f"Rejecting unknown or revoked token {redact_token(token)}")
            return None

        return TokenScope(
            tutor_id=stored.tutor_id,
            stage_id=stored.stage_id,
            team_ids=stored.team_ids,
        )

    # =========================================================================
    # Revoke
    # =========================================================================

    async def revoke(self, token: str, actor: Principal) -> Token:
        """
        Revoke a token. Revoking an already revoked token changes nothing.

        Raises:
            ForbiddenError: actor lacks ManageToken
            NotFoundError: no such token
        """
        self.policy.authorize(actor, AccessRequest(action=Action.TOKEN_REVOKE))

        if not is_well_formed(token):
            raise NotFoundError("token.not_found")

        async with self._locks.get(token):
            stored = await self.storage.tokens.get(token)
            if stored is None:
                raise NotFoundError("token.not_found")
            if not stored.revoked:
                stored.revoke()
                await self.storage.tokens.save(stored)
                logger.info(f"Revoked token {redact_token(token)} for tutor {stored.tutor_id}")
        return stored

    async def revoke_expired(self, now: datetime | None = None) -> int:
        """
        Revoke every active token whose stage has ended or no longer exists.

        Returns the number of tokens revoked.
        """
        now = now or utc_now()
        stages = {stage.id: stage for stage in await self.storage.directory.list_stages()}

        revoked = 0
        for candidate in await self.storage.tokens.query(revoked=False):
            stage = stages.get(candidate.stage_id)
            if stage is not None and not stage.has_ended(now):
                continue
            async with self._locks.get(candidate.id):
                stored = await self.storage.tokens.get(candidate.id)
                if stored is None or stored.revoked:
                    continue
                stored.revoke()
                await self.storage.tokens.save(stored)
                revoked += 1

        if revoked:
            logger.info(f"Revocation sweep revoked {revoked} token(s)")
        return revoked

    # =========================================================================
    # Listing
    # =========================================================================

    async def list_active(self, actor: Principal) -> list[Token]:
        self.policy.authorize(actor, AccessRequest(action=Action.TOKEN_LIST))
        return await self.storage.tokens.query(revoked=False)

    async def list_revoked(self, actor: Principal) -> list[Token]:
        """Revoked tokens, kept as history."""
        self.policy.authorize(actor, AccessRequest(action=Action.TOKEN_LIST))
        return await self.storage.tokens.query(revoked=True)
