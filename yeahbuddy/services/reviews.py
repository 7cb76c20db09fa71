"""
Review service - scored reviews, one per (team, stage, viewer) identity.

Every mutation runs as read-check-write under the identity's lock, so two
concurrent writers on the same identity can never both see
``submitted=False`` and both write. A failed call leaves the stored record
(or its absence) exactly as it was.
"""

from __future__ import annotations

import logging

from yeahbuddy.auth.context import Principal
from yeahbuddy.auth.permissions import Action
from yeahbuddy.auth.policies import AccessRequest, PolicyEvaluator
from yeahbuddy.core.errors import (
    AlreadySubmittedError,
    DuplicateKeyError,
    InvalidArgumentError,
    NotFoundError,
)
from yeahbuddy.core.locks import KeyedLocks
from yeahbuddy.core.models import Review, ReviewKey
from yeahbuddy.storage.base import StorageProvider

logger = logging.getLogger(__name__)


class ReviewService:
    """
    Owns the Review records.

    Typical flow for a tutor holding a token:
        review = await reviews.upsert_score(key, rank=8, text="Solid demo", actor=principal)
        review = await reviews.submit(key, actor=principal)
    """

    def __init__(
        self,
        storage: StorageProvider,
        policy: PolicyEvaluator | None = None,
    ):
        self.storage = storage
        self.policy = policy or PolicyEvaluator()
        self._locks = KeyedLocks()

    # =========================================================================
    # Reads
    # =========================================================================

    async def get(self, key: ReviewKey, actor: Principal) -> Review:
        """
        Get a review.

        Raises:
            ForbiddenError: actor may not read this identity
            NotFoundError: no review exists yet
        """
        self.policy.authorize(actor, AccessRequest.for_review(Action.REVIEW_READ, key))
        review = await self.storage.reviews.get(key)
        if review is None:
            raise NotFoundError("review.not_found", key.team_id, key.stage_id, key.viewer_id)
        return review

    async def list_by_team_and_stage(
        self,
        team_id: int,
        stage_id: int,
        actor: Principal,
    ) -> list[Review]:
        """
        All viewers' reviews of a team for a stage.

        Tutor reviews first, then administrator reviews, each by viewer id.
        """
        self.policy.authorize(
            actor,
            AccessRequest(action=Action.REVIEW_LIST, team_id=team_id, stage_id=stage_id),
        )
        reviews = await self.storage.reviews.query(team_id=team_id, stage_id=stage_id)
        reviews.sort(key=lambda r: (r.viewer_is_admin, r.viewer_id))
        return reviews

    # =========================================================================
    # Mutations
    # =========================================================================

    async def open(self, key: ReviewKey, actor: Principal) -> Review:
        """
        Get the review for an identity, creating an unscored one if needed.

        This is what happens when a viewer first opens a team's review page.
        """
        self.policy.authorize(actor, AccessRequest.for_review(Action.REVIEW_WRITE, key))
        await self._require_targets(key)

        async with self._locks.get(key):
            review = await self.storage.reviews.get(key)
            if review is not None:
                return review
            review = Review.for_key(key)
            await self._insert(review)
            logger.debug(f"Opened review {self._describe(key)}")
            return review

    async def upsert_score(
        self,
        key: ReviewKey,
        rank: int,
        text: str | None,
        actor: Principal,
    ) -> Review:
        """
        Set the score and comment, creating the review on first call.

        Raises:
            ForbiddenError: actor is not the viewer (and has no override)
            NotFoundError: unknown team or stage
            AlreadySubmittedError: the review is final
        """
        self.policy.authorize(actor, AccessRequest.for_review(Action.REVIEW_WRITE, key))
        await self._require_targets(key)

        async with self._locks.get(key):
            review = await self.storage.reviews.get(key)
            if review is None:
                review = Review.for_key(key)
                review.rank = rank
                review.text = text
                await self._insert(review)
                logger.info(f"Created review {self._describe(key)} with rank {rank}")
                return review

            if review.submitted:
                logger.info(f"Rejected update of submitted review {self._describe(key)}")
                raise AlreadySubmittedError("review.submitted", key.team_id, key.stage_id, key.viewer_id)

            review.rank = rank
            review.text = text
            await self.storage.reviews.save(review)
            logger.info(f"Updated review {self._describe(key)} with rank {rank}")
            return review

    async def submit(self, key: ReviewKey, actor: Principal) -> Review:
        """
        Finalize a review.

        Submitting an already submitted review succeeds and changes nothing.

        Raises:
            ForbiddenError: actor is not the viewer (and has no override)
            NotFoundError: nothing to submit
            InvalidArgumentError: the review has no rank yet
        """
        self.policy.authorize(actor, AccessRequest.for_review(Action.REVIEW_WRITE, key))

        async with self._locks.get(key):
            review = await self.storage.reviews.get(key)
            if review is None:
                raise NotFoundError("review.not_found", key.team_id, key.stage_id, key.viewer_id)
            if review.submitted:
                logger.debug(f"Review {self._describe(key)} already submitted")
                return review
            if review.rank is None:
                raise InvalidArgumentError("review.rank.missing", key.team_id, key.stage_id, key.viewer_id)

            review.submitted = True
            await self.storage.reviews.save(review)
            logger.info(f"Submitted review {self._describe(key)}")
            return review

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _require_targets(self, key: ReviewKey) -> None:
        directory = self.storage.directory
        if await directory.get_team(key.team_id) is None:
            raise NotFoundError("team.id.not_found", key.team_id)
        if await directory.get_stage(key.stage_id) is None:
            raise NotFoundError("stage.id.not_found", key.stage_id)

    async def _insert(self, review: Review) -> None:
        try:
            await self.storage.reviews.insert(review)
        except DuplicateKeyError:
            # Another writer outside this process won the first insert.
            logger.warning(f"Concurrent creation of review {self._describe(review.key)}")
            raise

    @staticmethod
    def _describe(key: ReviewKey) -> str:
        viewer = "admin" if key.viewer_is_admin else "tutor"
        return f"team={key.team_id} stage={key.stage_id} {viewer}={key.viewer_id}"
