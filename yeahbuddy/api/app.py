"""
FastAPI application for the YeahBuddy review service.

This is the HTTP API that the administrative UI and the tutor-facing review
pages talk to.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from yeahbuddy.api.access_log import install_access_log_redaction
from yeahbuddy.api.dependencies import get_actor, get_administrator, get_state
from yeahbuddy.api.routes import accounts_router, tokens_router
from yeahbuddy.api.state import AppState
from yeahbuddy.auth.context import AdministratorPrincipal, Principal, TokenPrincipal
from yeahbuddy.config import Settings, get_settings
from yeahbuddy.config_loader import load_directory
from yeahbuddy.core.errors import (
    AlreadySubmittedError,
    DuplicateKeyError,
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
    UnauthenticatedError,
    YeahBuddyError,
)
from yeahbuddy.core.models import Review, ReviewKey
from yeahbuddy.integrations.sentry import init_sentry
from yeahbuddy.storage import StorageProvider, create_local_storage

logger = logging.getLogger(__name__)

# Unauthenticated and Forbidden share a status so a probing client
# cannot tell "bad token" from "outside your scope".
ERROR_STATUS: dict[type[YeahBuddyError], int] = {
    UnauthenticatedError: 403,
    ForbiddenError: 403,
    NotFoundError: 404,
    AlreadySubmittedError: 409,
    DuplicateKeyError: 409,
    InvalidArgumentError: 400,
}


# =============================================================================
# Request/Response Models
# =============================================================================


class ScoreRequest(BaseModel):
    rank: int
    text: str | None = Field(default=None, max_length=10_000)


class PrincipalResponse(BaseModel):
    kind: str
    id: int
    stage_id: int | None = None
    team_ids: list[int] | None = None
    permissions: list[str] | None = None


# =============================================================================
# Error handling
# =============================================================================


def error_response(exc: YeahBuddyError) -> JSONResponse:
    status = 500
    for error_type in type(exc).__mro__:
        if error_type in ERROR_STATUS:
            status = ERROR_STATUS[error_type]
            break

    if isinstance(exc, (UnauthenticatedError, ForbiddenError)):
        return JSONResponse(status_code=status, content={"detail": exc.public_message})

    return JSONResponse(
        status_code=status,
        content={"detail": exc.public_message, "reason": exc.reason},
    )


async def handle_domain_error(request: Request, exc: YeahBuddyError) -> JSONResponse:
    return error_response(exc)


# =============================================================================
# App factory
# =============================================================================


def create_app(
    settings: Settings | None = None,
    storage: StorageProvider | None = None,
) -> FastAPI:
    """
    Build the application.

    Services are wired immediately so the app is usable without running the
    lifespan; the lifespan adds error tracking, seed loading and the
    revocation sweep.
    """
    settings = settings or get_settings()
    state = AppState.build(storage or create_local_storage(), settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_sentry(settings)
        install_access_log_redaction()

        if settings.directory_seed_file:
            await load_directory(state.storage.directory, settings.directory_seed_file)

        if settings.sweep_enabled:
            state.sweeper.start()

        logger.info(f"YeahBuddy API starting in {settings.environment} mode")

        yield

        await state.sweeper.stop()
        logger.info("YeahBuddy API shutting down")

    app = FastAPI(
        title="YeahBuddy API",
        description="Scoped review access for external tutors and submit-once team reviews",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.services = state

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(YeahBuddyError, handle_domain_error)

    app.include_router(tokens_router)
    app.include_router(accounts_router)
    app.include_router(reviews_router)
    app.include_router(misc_router)

    return app


# =============================================================================
# Reviews
# =============================================================================

reviews_router = APIRouter(prefix="/reviews", tags=["reviews"])
misc_router = APIRouter()


def _key(team_id: int, stage_id: int, viewer_id: int, viewer_is_admin: bool) -> ReviewKey:
    return ReviewKey(
        team_id=team_id,
        stage_id=stage_id,
        viewer_id=viewer_id,
        viewer_is_admin=viewer_is_admin,
    )


@reviews_router.get("/{team_id}/{stage_id}", response_model=list[Review])
async def list_reviews(
    team_id: int,
    stage_id: int,
    actor: AdministratorPrincipal = Depends(get_administrator),
    state: AppState = Depends(get_state),
):
    """All viewers' reviews of a team for a stage (ViewReport)."""
    return await state.reviews.list_by_team_and_stage(team_id, stage_id, actor)


@reviews_router.get("/{team_id}/{stage_id}/{viewer_id}", response_model=Review)
async def get_review(
    team_id: int,
    stage_id: int,
    viewer_id: int,
    viewer_is_admin: bool = False,
    actor: Principal = Depends(get_actor),
    state: AppState = Depends(get_state),
):
    return await state.reviews.get(_key(team_id, stage_id, viewer_id, viewer_is_admin), actor)


@reviews_router.post("/{team_id}/{stage_id}/{viewer_id}/open", response_model=Review)
async def open_review(
    team_id: int,
    stage_id: int,
    viewer_id: int,
    viewer_is_admin: bool = False,
    actor: Principal = Depends(get_actor),
    state: AppState = Depends(get_state),
):
    """Get the review, creating an unscored one on first visit."""
    return await state.reviews.open(_key(team_id, stage_id, viewer_id, viewer_is_admin), actor)


@reviews_router.put("/{team_id}/{stage_id}/{viewer_id}", response_model=Review)
async def score_review(
    team_id: int,
    stage_id: int,
    viewer_id: int,
    data: ScoreRequest,
    viewer_is_admin: bool = False,
    actor: Principal = Depends(get_actor),
    state: AppState = Depends(get_state),
):
    key = _key(team_id, stage_id, viewer_id, viewer_is_admin)
    return await state.reviews.upsert_score(key, data.rank, data.text, actor)


@reviews_router.post("/{team_id}/{stage_id}/{viewer_id}/submit", response_model=Review)
async def submit_review(
    team_id: int,
    stage_id: int,
    viewer_id: int,
    viewer_is_admin: bool = False,
    actor: Principal = Depends(get_actor),
    state: AppState = Depends(get_state),
):
    return await state.reviews.submit(_key(team_id, stage_id, viewer_id, viewer_is_admin), actor)


# =============================================================================
# Principal and health
# =============================================================================


@misc_router.get("/me", response_model=PrincipalResponse)
async def whoami(actor: Principal = Depends(get_actor)):
    """What the presented credential resolves to."""
    if isinstance(actor, TokenPrincipal):
        return PrincipalResponse(
            kind="token",
            id=actor.tutor_id,
            stage_id=actor.stage_id,
            team_ids=sorted(actor.team_ids),
        )
    return PrincipalResponse(
        kind="administrator",
        id=actor.admin_id,
        permissions=sorted(p.value for p in actor.permissions),
    )


@misc_router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "yeahbuddy-api"}


app = create_app()
