"""
Authorization system - scoped tokens, explicit principals, one policy evaluator.

Design principles:
1. Principals are passed explicitly, never read from ambient state
2. Decisions are data driven (action -> required permissions table)
3. Token holders only ever act as themselves, inside their stage and teams
4. Every denial looks the same from outside
"""

from yeahbuddy.auth.context import (
    AdministratorPrincipal,
    TokenPrincipal,
    Principal,
)
from yeahbuddy.auth.permissions import (
    Action,
    ACTION_PERMISSIONS,
    required_permissions,
    parse_permissions,
)
from yeahbuddy.auth.policies import (
    AccessRequest,
    PolicyEvaluator,
)
from yeahbuddy.auth.passwords import (
    hash_password,
    verify_password,
)
from yeahbuddy.auth.tokens import TokenRegistry
from yeahbuddy.auth.resolver import TokenAuthenticator

__all__ = [
    # Principals
    "AdministratorPrincipal",
    "TokenPrincipal",
    "Principal",
    # Policy
    "Action",
    "ACTION_PERMISSIONS",
    "required_permissions",
    "parse_permissions",
    "AccessRequest",
    "PolicyEvaluator",
    # Credentials
    "hash_password",
    "verify_password",
    # Tokens
    "TokenRegistry",
    "TokenAuthenticator",
]
