"""
Application state - the wired services, built once per app.
"""

from __future__ import annotations

from dataclasses import dataclass

from yeahbuddy.auth.policies import PolicyEvaluator
from yeahbuddy.auth.resolver import TokenAuthenticator
from yeahbuddy.auth.tokens import TokenRegistry
from yeahbuddy.config import Settings
from yeahbuddy.services.accounts import AccountService
from yeahbuddy.services.reviews import ReviewService
from yeahbuddy.services.sweeper import RevocationSweeper
from yeahbuddy.storage.base import StorageProvider


@dataclass
class AppState:
    """Everything a request handler needs, sharing one storage and one policy."""

    settings: Settings
    storage: StorageProvider
    policy: PolicyEvaluator
    tokens: TokenRegistry
    authenticator: TokenAuthenticator
    reviews: ReviewService
    accounts: AccountService
    sweeper: RevocationSweeper

    @classmethod
    def build(cls, storage: StorageProvider, settings: Settings) -> AppState:
        policy = PolicyEvaluator()
        tokens = TokenRegistry(storage, policy=policy, settings=settings)
        return cls(
            settings=settings,
            storage=storage,
            policy=policy,
            tokens=tokens,
            authenticator=TokenAuthenticator(tokens, storage.directory, settings=settings),
            reviews=ReviewService(storage, policy=policy),
            accounts=AccountService(storage, policy=policy),
            sweeper=RevocationSweeper(tokens, interval=settings.revocation_sweep_interval_seconds),
        )
