"""
Token authentication - bearer string in, scoped principal out.

The transport layer hands over whatever credential string it found; this
module decides whether it names a live token for an existing tutor and, if so,
builds the request's ``TokenPrincipal``.
"""

from __future__ import annotations

import logging

from yeahbuddy.auth.context import TokenPrincipal
from yeahbuddy.auth.tokens import TokenRegistry
from yeahbuddy.config import Settings, get_settings
from yeahbuddy.core.errors import UnauthenticatedError
from yeahbuddy.core.utils import redact_token, utc_now
from yeahbuddy.storage.base import DirectoryStorage

logger = logging.getLogger(__name__)


class TokenAuthenticator:
    """
    Resolves bearer tokens to principals.

    Steps:
    1. Registry lookup (unknown, malformed and revoked all look the same)
    2. The tutor must still exist
    3. The stage must exist and, unless disabled, must not have ended
    4. Build a fresh TokenPrincipal scoped to the token's stage and teams
    """

    def __init__(
        self,
        registry: TokenRegistry,
        directory: DirectoryStorage,
        settings: Settings | None = None,
    ):
        self.registry = registry
        self.directory = directory
        self.settings = settings or get_settings()

    async def resolve(self, bearer: object) -> TokenPrincipal | None:
        """
        Resolve a bearer credential.

        Returns the principal, or None when authentication fails for any
        reason. Never raises for bad input.
        """
        scope = await self.registry.resolve(bearer)
        if scope is None:
            logger.info("Token authentication failed: no live token")
            return None

        hint = redact_token(bearer)

        tutor = await self.directory.get_tutor(scope.tutor_id)
        if tutor is None:
            logger.info(f"Token authentication failed for {hint}: tutor {scope.tutor_id} no longer exists")
            return None

        if self.settings.tokens_expire_with_stage:
            stage = await self.directory.get_stage(scope.stage_id)
            if stage is None or stage.has_ended(utc_now()):
                logger.info(f"Token authentication failed for {hint}: stage {scope.stage_id} is closed")
                return None

        logger.debug(f"Authenticated tutor {tutor.id} via token {hint}")
        return TokenPrincipal.from_scope(scope, token_hint=hint)

    async def authenticate(self, bearer: object) -> TokenPrincipal:
        """
        Resolve a bearer credential or raise.

        Raises:
            UnauthenticatedError: with no detail about why
        """
        principal = await self.resolve(bearer)
        if principal is None:
            raise UnauthenticatedError()
        return principal
