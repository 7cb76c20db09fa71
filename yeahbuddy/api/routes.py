# =============================================================================
# Administrative API Routes
# =============================================================================
#
# Tokens:
#   POST   /tokens                      - Issue a scoped token for a tutor
#   GET    /tokens?revoked=false|true   - Active tokens, or revoked history
#   POST   /tokens/revoke               - Revoke a token (token in the body)
#
# Administrators:
#   POST   /administrators                  - Register (subset of own permissions)
#   PUT    /administrators/{admin_id}       - Rename (self or ManageAdministrator)
#   POST   /administrators/{admin_id}/password
#
# Tutors:
#   GET    /tutors
#   POST   /tutors
#   PUT    /tutors/{tutor_id}
#   POST   /tutors/{tutor_id}/password/reset
#   DELETE /tutors/{tutor_id}
#
# =============================================================================

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field

from yeahbuddy.api.dependencies import get_administrator, get_state
from yeahbuddy.api.state import AppState
from yeahbuddy.auth.context import AdministratorPrincipal
from yeahbuddy.core.models import Administrator, AdministratorPermission, Token, Tutor
from yeahbuddy.core.utils import redact_token

tokens_router = APIRouter(prefix="/tokens", tags=["tokens"])
accounts_router = APIRouter(tags=["accounts"])


# =============================================================================
# Request/Response Models
# =============================================================================


class IssueTokenRequest(BaseModel):
    tutor_id: int
    stage_id: int
    team_ids: list[int]


class RevokeTokenRequest(BaseModel):
    token: str


class TokenResponse(BaseModel):
    """A token as shown to administrators."""
    token: str
    tutor_id: int
    stage_id: int
    team_ids: list[int]
    revoked: bool
    created_at: datetime
    created_by: int | None
    revoked_at: datetime | None

    @classmethod
    def from_token(cls, token: Token, reveal: bool = True) -> "TokenResponse":
        return cls(
            token=token.id if reveal else redact_token(token.id),
            tutor_id=token.tutor_id,
            stage_id=token.stage_id,
            team_ids=sorted(token.team_ids),
            revoked=token.revoked,
            created_at=token.created_at,
            created_by=token.created_by,
            revoked_at=token.revoked_at,
        )


class RegisterAdministratorRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=8)
    permissions: list[AdministratorPermission] = []


class UpdateAdministratorRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)


class ChangePasswordRequest(BaseModel):
    old_password: str
    new_password: str = Field(min_length=8)


class AdministratorResponse(BaseModel):
    id: int
    name: str
    permissions: list[AdministratorPermission]

    @classmethod
    def from_administrator(cls, admin: Administrator) -> "AdministratorResponse":
        return cls(
            id=admin.id,
            name=admin.name,
            permissions=sorted(admin.permissions, key=lambda p: p.value),
        )


class RegisterTutorRequest(BaseModel):
    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=8)
    display_name: str = ""
    email: EmailStr | None = None
    phone: str | None = None


class UpdateTutorRequest(BaseModel):
    username: str | None = Field(default=None, min_length=1, max_length=100)
    display_name: str | None = None
    email: EmailStr | None = None
    phone: str | None = None


class ResetPasswordRequest(BaseModel):
    new_password: str = Field(min_length=8)


class TutorResponse(BaseModel):
    """Tutor data returned to administrators (no credential fields)."""
    id: int
    username: str
    display_name: str
    email: str | None
    phone: str | None

    @classmethod
    def from_tutor(cls, tutor: Tutor) -> "TutorResponse":
        return cls(
            id=tutor.id,
            username=tutor.username,
            display_name=tutor.display_name,
            email=tutor.email,
            phone=tutor.phone,
        )


# =============================================================================
# Tokens
# =============================================================================


@tokens_router.post("", response_model=TokenResponse, status_code=201)
async def issue_token(
    data: IssueTokenRequest,
    actor: AdministratorPrincipal = Depends(get_administrator),
    state: AppState = Depends(get_state),
):
    """
    Issue a token. The token string is returned in full; hand it to the tutor.
    """
    token = await state.tokens.issue(data.tutor_id, data.stage_id, data.team_ids, actor)
    return TokenResponse.from_token(token)


@tokens_router.get("", response_model=list[TokenResponse])
async def list_tokens(
    revoked: bool = False,
    actor: AdministratorPrincipal = Depends(get_administrator),
    state: AppState = Depends(get_state),
):
    """Active tokens, or with ``revoked=true`` the revoked history."""
    if revoked:
        tokens = await state.tokens.list_revoked(actor)
    else:
        tokens = await state.tokens.list_active(actor)
    # Revoked identifiers are history only; no need to show them whole.
    return [TokenResponse.from_token(t, reveal=not t.revoked) for t in tokens]


@tokens_router.post("/revoke", response_model=TokenResponse)
async def revoke_token(
    data: RevokeTokenRequest,
    actor: AdministratorPrincipal = Depends(get_administrator),
    state: AppState = Depends(get_state),
):
    revoked = await state.tokens.revoke(data.token, actor)
    return TokenResponse.from_token(revoked, reveal=False)


# =============================================================================
# Administrators
# =============================================================================


@accounts_router.post("/administrators", response_model=AdministratorResponse, status_code=201)
async def register_administrator(
    data: RegisterAdministratorRequest,
    actor: AdministratorPrincipal = Depends(get_administrator),
    state: AppState = Depends(get_state),
):
    admin = await state.accounts.register_administrator(data.name, data.password, data.permissions, actor)
    return AdministratorResponse.from_administrator(admin)


@accounts_router.put("/administrators/{admin_id}", response_model=AdministratorResponse)
async def update_administrator(
    admin_id: int,
    data: UpdateAdministratorRequest,
    actor: AdministratorPrincipal = Depends(get_administrator),
    state: AppState = Depends(get_state),
):
    admin = await state.accounts.update_administrator(admin_id, data.name, actor)
    return AdministratorResponse.from_administrator(admin)


@accounts_router.post("/administrators/{admin_id}/password")
async def change_administrator_password(
    admin_id: int,
    data: ChangePasswordRequest,
    actor: AdministratorPrincipal = Depends(get_administrator),
    state: AppState = Depends(get_state),
):
    await state.accounts.update_administrator_password(admin_id, data.old_password, data.new_password, actor)
    return {"message": "Password updated"}


# =============================================================================
# Tutors
# =============================================================================


@accounts_router.get("/tutors", response_model=list[TutorResponse])
async def list_tutors(
    actor: AdministratorPrincipal = Depends(get_administrator),
    state: AppState = Depends(get_state),
):
    return [TutorResponse.from_tutor(t) for t in await state.accounts.list_tutors(actor)]


@accounts_router.post("/tutors", response_model=TutorResponse, status_code=201)
async def register_tutor(
    data: RegisterTutorRequest,
    actor: AdministratorPrincipal = Depends(get_administrator),
    state: AppState = Depends(get_state),
):
    tutor = await state.accounts.register_tutor(
        data.username,
        data.password,
        actor,
        display_name=data.display_name,
        email=data.email,
        phone=data.phone,
    )
    return TutorResponse.from_tutor(tutor)


@accounts_router.put("/tutors/{tutor_id}", response_model=TutorResponse)
async def update_tutor(
    tutor_id: int,
    data: UpdateTutorRequest,
    actor: AdministratorPrincipal = Depends(get_administrator),
    state: AppState = Depends(get_state),
):
    tutor = await state.accounts.update_tutor(
        tutor_id,
        actor,
        username=data.username,
        display_name=data.display_name,
        email=data.email,
        phone=data.phone,
    )
    return TutorResponse.from_tutor(tutor)


@accounts_router.post("/tutors/{tutor_id}/password/reset")
async def reset_tutor_password(
    tutor_id: int,
    data: ResetPasswordRequest,
    actor: AdministratorPrincipal = Depends(get_administrator),
    state: AppState = Depends(get_state),
):
    await state.accounts.reset_tutor_password(tutor_id, data.new_password, actor)
    return {"message": "Password reset"}


@accounts_router.delete("/tutors/{tutor_id}", status_code=204)
async def delete_tutor(
    tutor_id: int,
    actor: AdministratorPrincipal = Depends(get_administrator),
    state: AppState = Depends(get_state),
):
    await state.accounts.delete_tutor(tutor_id, actor)
