"""
FastAPI dependencies - turn request credentials into principals.

Two ways in:
- ``Authorization: Bearer <token>`` (or ``?token=<token>``) for tutors
  holding an access token
- ``Authorization: Basic`` for administrators, checked on every request

Usage in routes:
    async def my_route(actor: Principal = Depends(get_actor)):
        ...
"""

from __future__ import annotations

import base64
import binascii

from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBasicCredentials, HTTPBearer
from fastapi.security.utils import get_authorization_scheme_param

from yeahbuddy.api.state import AppState
from yeahbuddy.auth.context import AdministratorPrincipal, Principal, TokenPrincipal
from yeahbuddy.core.errors import UnauthenticatedError


# Optional schemes (don't fail if absent; we decide below)
optional_bearer = HTTPBearer(auto_error=False)


async def optional_basic(request: Request) -> HTTPBasicCredentials | None:
    """
    HTTP Basic credentials, if the request carries them.

    FastAPI's HTTPBasic answers an undecodable header with its own 401 even
    with ``auto_error=False``; here a broken Basic header is an ordinary
    failed credential.
    """
    scheme, param = get_authorization_scheme_param(request.headers.get("Authorization"))
    if scheme.lower() != "basic":
        return None
    try:
        decoded = base64.b64decode(param, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        raise UnauthenticatedError()
    username, separator, password = decoded.partition(":")
    if not separator:
        raise UnauthenticatedError()
    return HTTPBasicCredentials(username=username, password=password)


def get_state(request: Request) -> AppState:
    return request.app.state.services


async def get_token_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_bearer),
    token: str | None = Query(default=None, include_in_schema=False),
    state: AppState = Depends(get_state),
) -> TokenPrincipal:
    """Resolve the bearer token (header first, then query parameter)."""
    bearer = credentials.credentials if credentials else token
    if not bearer:
        raise UnauthenticatedError()
    return await state.authenticator.authenticate(bearer)


async def get_administrator(
    credentials: HTTPBasicCredentials | None = Depends(optional_basic),
    state: AppState = Depends(get_state),
) -> AdministratorPrincipal:
    """Check administrator credentials sent with the request."""
    if credentials is None:
        raise UnauthenticatedError()
    principal = await state.accounts.authenticate_administrator(
        credentials.username,
        credentials.password,
    )
    if principal is None:
        raise UnauthenticatedError()
    return principal


async def get_actor(
    bearer: HTTPAuthorizationCredentials | None = Depends(optional_bearer),
    basic: HTTPBasicCredentials | None = Depends(optional_basic),
    token: str | None = Query(default=None, include_in_schema=False),
    state: AppState = Depends(get_state),
) -> Principal:
    """Either kind of principal; token credentials win when both are present."""
    if bearer is not None or token:
        return await get_token_principal(bearer, token, state)
    return await get_administrator(basic, state)
