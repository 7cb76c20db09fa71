"""
Shared fixtures.

Every test gets fresh in-memory storage seeded with a small directory:
tutor 42, teams 5/7/9/100, stages 1-3 (open) and stage 4 (ended).
"""

import asyncio
import os

# Cheap hashing and no background work while testing.
os.environ.setdefault("YEAHBUDDY_PASSWORD_HASH_ITERATIONS", "1000")
os.environ.setdefault("YEAHBUDDY_REVOCATION_SWEEP_INTERVAL_SECONDS", "0")
os.environ.setdefault("YEAHBUDDY_SENTRY_DSN", "")

from datetime import timedelta

import pytest
import pytest_asyncio

from yeahbuddy.auth.context import AdministratorPrincipal
from yeahbuddy.auth.passwords import hash_password
from yeahbuddy.auth.policies import PolicyEvaluator
from yeahbuddy.auth.resolver import TokenAuthenticator
from yeahbuddy.auth.tokens import TokenRegistry
from yeahbuddy.config import Settings, get_settings
from yeahbuddy.core.models import Administrator, AdministratorPermission, Stage, Team, Tutor
from yeahbuddy.core.utils import utc_now
from yeahbuddy.services.accounts import AccountService
from yeahbuddy.services.reviews import ReviewService
from yeahbuddy.storage import create_local_storage
from yeahbuddy.storage.local import InMemoryReviewStorage, InMemoryTokenStorage

get_settings.cache_clear()

P = AdministratorPermission

ROOT_PASSWORD = "root-password"
TUTOR_PASSWORD = "tutor-password"


# =============================================================================
# Settings and storage
# =============================================================================


@pytest.fixture
def settings():
    return Settings(
        password_hash_iterations=1000,
        revocation_sweep_interval_seconds=0,
        sentry_dsn="",
        directory_seed_file="",
    )


@pytest_asyncio.fixture
async def storage():
    """In-memory storage with the standard directory."""
    storage = create_local_storage()
    directory = storage.directory
    now = utc_now()

    await directory.save_administrator(Administrator(
        id=1,
        name="root",
        password_hash=hash_password(ROOT_PASSWORD),
        permissions=set(P),
    ))
    await directory.save_administrator(Administrator(
        id=2,
        name="viewer",
        password_hash=hash_password("viewer-password"),
        permissions={P.VIEW_REPORT},
    ))
    await directory.save_tutor(Tutor(
        id=42,
        username="tutor42",
        password_hash=hash_password(TUTOR_PASSWORD),
        display_name="Tutor Forty-Two",
    ))
    for team_id in (5, 7, 9, 100):
        await directory.save_team(Team(id=team_id, name=f"Team {team_id}"))
    for stage_id in (1, 2, 3):
        await directory.save_stage(Stage(id=stage_id, title=f"Stage {stage_id}", end=now + timedelta(days=30)))
    await directory.save_stage(Stage(id=4, title="Closed", end=now - timedelta(days=1)))

    return storage


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def policy():
    return PolicyEvaluator()


@pytest.fixture
def registry(storage, policy, settings):
    return TokenRegistry(storage, policy=policy, settings=settings)


@pytest.fixture
def authenticator(registry, storage, settings):
    return TokenAuthenticator(registry, storage.directory, settings=settings)


@pytest.fixture
def reviews(storage, policy):
    return ReviewService(storage, policy=policy)


@pytest.fixture
def accounts(storage, policy):
    return AccountService(storage, policy=policy)


# =============================================================================
# Principals
# =============================================================================


@pytest.fixture
def root():
    """Administrator holding every permission."""
    return AdministratorPrincipal(admin_id=1, name="root", permissions=frozenset(P))


@pytest.fixture
def viewer_admin():
    """Administrator who can only view reports."""
    return AdministratorPrincipal(admin_id=2, name="viewer", permissions=frozenset({P.VIEW_REPORT}))


@pytest.fixture
def bare_admin():
    """Administrator with no permissions at all."""
    return AdministratorPrincipal(admin_id=3, name="bare", permissions=frozenset())


# =============================================================================
# Interleaving storage
# =============================================================================


class InterleavingReviewStorage(InMemoryReviewStorage):
    """Yields to the event loop after every read, like a real backend would."""

    async def get(self, key):
        review = await super().get(key)
        await asyncio.sleep(0)
        return review


class InterleavingTokenStorage(InMemoryTokenStorage):
    """Yields after every read and counts writes to existing tokens."""

    def __init__(self):
        super().__init__()
        self.saves = 0

    async def get(self, token_id):
        token = await super().get(token_id)
        await asyncio.sleep(0)
        return token

    async def save(self, token):
        self.saves += 1
        await super().save(token)


@pytest.fixture
def interleaving(storage):
    """Swap the seeded storage's review and token stores for yielding ones."""
    storage.reviews = InterleavingReviewStorage()
    storage.tokens = InterleavingTokenStorage()
    return storage
