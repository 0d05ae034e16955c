"""
Feature request repository for database operations.
"""

from typing import Any, List, Optional, Tuple

from sqlalchemy import func, literal, select
from sqlalchemy.orm import Session

import repositories.db_models as db_models
from .base import BaseRepository

SORT_VOTES = "votes"
SORT_NEWEST = "newest"
SORT_OLDEST = "oldest"

VIEW_ALL = "ALL"
VIEW_MINE = "MINE"
VIEW_VOTED = "VOTED"


class FeatureRequestRepository(BaseRepository[db_models.FeatureRequest]):
    """Repository for FeatureRequest entity database operations."""

    def __init__(self, db: Session):
        """
        Initialize feature request repository.

        Args:
            db: Database session
        """
        super().__init__(db_models.FeatureRequest, db)

    @staticmethod
    def _vote_count_column():
        """Correlated count of votes for the outer FeatureRequest row."""
        return (
            select(func.count(db_models.Vote.id))
            .where(db_models.Vote.feature_request_id == db_models.FeatureRequest.id)
            .correlate(db_models.FeatureRequest)
            .scalar_subquery()
        )

    def _scored_query(self, current_user_id: Optional[int]):
        """
        Base query yielding (request, author_name, vote_count, has_voted).

        ``has_voted`` is always False for anonymous callers.
        """
        if current_user_id is not None:
            has_voted = (
                select(db_models.Vote.id)
                .where(
                    db_models.Vote.feature_request_id == db_models.FeatureRequest.id,
                    db_models.Vote.user_id == current_user_id,
                )
                .correlate(db_models.FeatureRequest)
                .exists()
            )
        else:
            has_voted = literal(False)

        return self.db.query(
            db_models.FeatureRequest,
            db_models.User.name.label("author_name"),
            self._vote_count_column().label("vote_count"),
            has_voted.label("has_voted"),
        ).join(db_models.User, db_models.FeatureRequest.user_id == db_models.User.id)

    def list_with_vote_counts(
        self,
        statuses: Optional[List[db_models.FeatureRequestStatus]] = None,
        view: str = VIEW_ALL,
        current_user_id: Optional[int] = None,
        sort: str = SORT_VOTES,
        skip: int = 0,
        limit: int = 50,
    ) -> List[Any]:
        """
        List feature requests with computed vote counts.

        Args:
            statuses: Keep only requests in these statuses (None keeps all)
            view: ``ALL``, ``MINE`` (owned by current user) or ``VOTED``
                (voted on by current user). MINE and VOTED need a user.
            current_user_id: Caller's user ID, used for ``has_voted`` and views
            sort: ``votes`` (most voted first), ``newest`` or ``oldest``
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            Rows of (FeatureRequest, author_name, vote_count, has_voted)
        """
        vote_count = self._vote_count_column()
        query = self._scored_query(current_user_id)

        if statuses is not None:
            query = query.filter(db_models.FeatureRequest.status.in_(statuses))

        if view == VIEW_MINE:
            query = query.filter(db_models.FeatureRequest.user_id == current_user_id)
        elif view == VIEW_VOTED:
            voted_ids = select(db_models.Vote.feature_request_id).where(
                db_models.Vote.user_id == current_user_id
            )
            query = query.filter(db_models.FeatureRequest.id.in_(voted_ids))

        if sort == SORT_NEWEST:
            order = (
                db_models.FeatureRequest.created_at.desc(),
                db_models.FeatureRequest.id.desc(),
            )
        elif sort == SORT_OLDEST:
            order = (
                db_models.FeatureRequest.created_at.asc(),
                db_models.FeatureRequest.id.asc(),
            )
        else:
            order = (
                vote_count.desc(),
                db_models.FeatureRequest.created_at.desc(),
                db_models.FeatureRequest.id.desc(),
            )

        return query.order_by(*order).offset(skip).limit(limit).all()

    def get_with_vote_count(
        self, request_id: int, current_user_id: Optional[int] = None
    ) -> Optional[Any]:
        """
        Get a single feature request with its computed vote count.

        Args:
            request_id: Feature request ID
            current_user_id: Caller's user ID, used for ``has_voted``

        Returns:
            Row of (FeatureRequest, author_name, vote_count, has_voted) or None
        """
        return (
            self._scored_query(current_user_id)
            .filter(db_models.FeatureRequest.id == request_id)
            .first()
        )

    def get_owned_with_vote_counts_for_update(
        self, user_id: int
    ) -> List[Tuple[db_models.FeatureRequest, int]]:
        """
        Load every request owned by a user with its current vote count.

        Rows are locked ``FOR UPDATE`` on databases that support it, so the
        counts cannot move while the caller's transaction decides what to do
        with each request.

        Args:
            user_id: Owner's user ID

        Returns:
            List of (FeatureRequest, vote_count) tuples
        """
        rows = (
            self.db.query(
                db_models.FeatureRequest,
                self._vote_count_column().label("vote_count"),
            )
            .filter(db_models.FeatureRequest.user_id == user_id)
            .order_by(db_models.FeatureRequest.id)
            .with_for_update(of=db_models.FeatureRequest)
            .all()
        )
        return [(row[0], int(row[1])) for row in rows]

    def lock(self, request_id: int) -> None:
        """
        Lock one request row ``FOR UPDATE`` until the transaction ends.

        A no-op on databases without row locks.

        Args:
            request_id: Feature request ID
        """
        self.db.execute(
            select(db_models.FeatureRequest.id)
            .where(db_models.FeatureRequest.id == request_id)
            .with_for_update()
        )

    def count_by_user(self, user_id: int) -> int:
        """
        Count requests owned by a user.

        Args:
            user_id: Owner's user ID

        Returns:
            Number of requests
        """
        return (
            self.db.query(func.count(db_models.FeatureRequest.id))
            .filter(db_models.FeatureRequest.user_id == user_id)
            .scalar()
            or 0
        )

    def owned_ids_among(self, user_id: int, request_ids: list[int]) -> set[int]:
        """
        Return which of the given requests a user owns.

        Args:
            user_id: Owner's user ID
            request_ids: Candidate feature request IDs

        Returns:
            Subset of IDs owned by the user
        """
        if not request_ids:
            return set()
        rows = (
            self.db.query(db_models.FeatureRequest.id)
            .filter(
                db_models.FeatureRequest.user_id == user_id,
                db_models.FeatureRequest.id.in_(request_ids),
            )
            .all()
        )
        return {row[0] for row in rows}
