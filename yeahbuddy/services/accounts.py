"""
Account service - administrators and tutors.

Registration, profile and password changes for the two account kinds, and
the per-request administrator credential check used by the HTTP layer.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Iterable

from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError

from yeahbuddy.auth.context import AdministratorPrincipal, Principal
from yeahbuddy.auth.passwords import hash_password, verify_password
from yeahbuddy.auth.permissions import Action, parse_permissions
from yeahbuddy.auth.policies import AccessRequest, PolicyEvaluator
from yeahbuddy.core.errors import ACCESS_DENIED, ForbiddenError, InvalidArgumentError, NotFoundError
from yeahbuddy.core.models import Administrator, AdministratorPermission, Tutor
from yeahbuddy.storage.base import StorageProvider

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _placeholder_hash() -> str:
    """Credential checked against when no administrator has the given name."""
    return hash_password("placeholder administrator password")


class AccountService:
    """Maintains administrator and tutor accounts in the directory."""

    def __init__(
        self,
        storage: StorageProvider,
        policy: PolicyEvaluator | None = None,
    ):
        self.storage = storage
        self.policy = policy or PolicyEvaluator()

    @property
    def directory(self):
        return self.storage.directory

    # =========================================================================
    # Administrators
    # =========================================================================

    async def authenticate_administrator(self, name: str, password: str) -> AdministratorPrincipal | None:
        """Check an administrator's credentials. Returns None on any mismatch."""
        admin = await self.directory.get_administrator_by_name(name)
        # Unknown names cost one hash as well, so timing is the same either way.
        if admin is not None:
            stored_hash = admin.password_hash
        else:
            stored_hash = await run_in_threadpool(_placeholder_hash)
        matches = await run_in_threadpool(verify_password, password, stored_hash)
        if admin is None or not matches:
            logger.info(f"Failed administrator authentication for {name!r}")
            return None
        return AdministratorPrincipal.from_administrator(admin)

    async def register_administrator(
        self,
        name: str,
        password: str,
        permissions: Iterable[AdministratorPermission | str],
        actor: Principal,
    ) -> Administrator:
        """
        Register a new administrator.

        The actor needs RegisterAdministrator and may only grant permissions
        they hold themselves.
        """
        self.policy.authorize(actor, AccessRequest(action=Action.ADMINISTRATOR_REGISTER))

        try:
            granted = parse_permissions(permissions)
        except ValueError:
            raise InvalidArgumentError("administrator.permission.unknown")

        if not isinstance(actor, AdministratorPrincipal) or not actor.can_grant(granted):
            logger.warning(f"Administrator {actor!r} tried to grant permissions beyond their own")
            raise ForbiddenError(ACCESS_DENIED)

        if not name or not password:
            raise InvalidArgumentError("administrator.register.not_ready")

        if await self.directory.get_administrator_by_name(name) is not None:
            logger.info(f"Failed to register administrator {name}: name already exists")
            raise InvalidArgumentError("administrator.name.exist", name)

        admin = Administrator(
            id=await self.directory.next_id("administrator"),
            name=name,
            password_hash=await run_in_threadpool(hash_password, password),
            permissions=granted,
        )
        await self.directory.save_administrator(admin)
        logger.info(f"Registered administrator {admin.id} ({name}) with {sorted(p.value for p in granted)}")
        return admin

    async def update_administrator(self, admin_id: int, name: str | None, actor: Principal) -> Administrator:
        """Rename an administrator. ManageAdministrator, or the administrator themselves."""
        self.policy.authorize(actor, AccessRequest(action=Action.ADMINISTRATOR_UPDATE, subject_id=admin_id))
        admin = await self._load_administrator(admin_id)

        if name is not None and name != admin.name:
            if await self.directory.get_administrator_by_name(name) is not None:
                raise InvalidArgumentError("administrator.name.exist", name)
            logger.debug(f"Renamed administrator {admin_id}: {admin.name} -> {name}")
            admin.name = name

        await self.directory.save_administrator(admin)
        return admin

    async def update_administrator_password(
        self,
        admin_id: int,
        old_password: str,
        new_password: str,
        actor: Principal,
    ) -> Administrator:
        """Change a password after checking the current one."""
        self.policy.authorize(actor, AccessRequest(action=Action.ADMINISTRATOR_UPDATE, subject_id=admin_id))
        admin = await self._load_administrator(admin_id)

        if not await run_in_threadpool(verify_password, old_password, admin.password_hash):
            logger.warning(f"Failed to update password for administrator {admin_id}: old password doesn't match")
            raise InvalidArgumentError("administrator.password.mismatch")

        admin.password_hash = await run_in_threadpool(hash_password, new_password)
        await self.directory.save_administrator(admin)
        logger.info(f"Updated password for administrator {admin_id}")
        return admin

    async def _load_administrator(self, admin_id: int) -> Administrator:
        admin = await self.directory.get_administrator(admin_id)
        if admin is None:
            raise NotFoundError("administrator.id.not_found", admin_id)
        return admin

    # =========================================================================
    # Tutors
    # =========================================================================

    async def list_tutors(self, actor: Principal) -> list[Tutor]:
        self.policy.authorize(actor, AccessRequest(action=Action.TUTOR_MANAGE))
        return await self.directory.list_tutors()

    async def register_tutor(
        self,
        username: str,
        password: str,
        actor: Principal,
        display_name: str = "",
        email: str | None = None,
        phone: str | None = None,
    ) -> Tutor:
        self.policy.authorize(actor, AccessRequest(action=Action.TUTOR_MANAGE))

        if not username or not password:
            raise InvalidArgumentError("tutor.register.not_ready")

        if await self.directory.get_tutor_by_username(username) is not None:
            logger.info(f"Failed to register tutor {username}: username already exists")
            raise InvalidArgumentError("tutor.username.exist", username)

        try:
            tutor = Tutor(
                id=await self.directory.next_id("tutor"),
                username=username,
                password_hash=await run_in_threadpool(hash_password, password),
                display_name=display_name,
                email=email,
                phone=phone,
            )
        except ValidationError:
            raise InvalidArgumentError("tutor.register.invalid", username)
        await self.directory.save_tutor(tutor)
        logger.info(f"Registered tutor {tutor.id} ({username})")
        return tutor

    async def update_tutor(
        self,
        tutor_id: int,
        actor: Principal,
        username: str | None = None,
        display_name: str | None = None,
        email: str | None = None,
        phone: str | None = None,
    ) -> Tutor:
        """Update the given fields; None leaves a field unchanged."""
        self.policy.authorize(actor, AccessRequest(action=Action.TUTOR_MANAGE))
        tutor = await self._load_tutor(tutor_id)

        if username is not None and username != tutor.username:
            if await self.directory.get_tutor_by_username(username) is not None:
                logger.info(f"Failed to rename tutor {tutor_id}: username already exists")
                raise InvalidArgumentError("tutor.username.exist", username)
            tutor.username = username

        updates = {"display_name": display_name, "email": email, "phone": phone}
        changed = {k: v for k, v in updates.items() if v is not None}
        # Re-validate so a bad email is rejected before anything is saved.
        try:
            tutor = Tutor.model_validate({**tutor.model_dump(), **changed})
        except ValidationError:
            raise InvalidArgumentError("tutor.update.invalid", tutor_id)

        await self.directory.save_tutor(tutor)
        logger.debug(f"Updated tutor {tutor_id}: {sorted(changed)}")
        return tutor

    async def reset_tutor_password(self, tutor_id: int, new_password: str, actor: Principal) -> Tutor:
        """Overwrite a tutor's password. Needs ResetPassword and ManageTutor."""
        self.policy.authorize(actor, AccessRequest(action=Action.TUTOR_RESET_PASSWORD))
        if not new_password:
            raise InvalidArgumentError("tutor.password.empty")

        tutor = await self._load_tutor(tutor_id)
        tutor.password_hash = await run_in_threadpool(hash_password, new_password)
        await self.directory.save_tutor(tutor)
        logger.info(f"Reset password for tutor {tutor_id}")
        return tutor

    async def delete_tutor(self, tutor_id: int, actor: Principal) -> None:
        """Delete a tutor. Their tokens stop resolving from then on."""
        self.policy.authorize(actor, AccessRequest(action=Action.TUTOR_MANAGE))
        if not await self.directory.delete_tutor(tutor_id):
            raise NotFoundError("tutor.id.not_found", tutor_id)
        logger.info(f"Deleted tutor {tutor_id}")

    async def _load_tutor(self, tutor_id: int) -> Tutor:
        tutor = await self.directory.get_tutor(tutor_id)
        if tutor is None:
            raise NotFoundError("tutor.id.not_found", tutor_id)
        return tutor
