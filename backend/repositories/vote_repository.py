"""
Vote repository for database operations.
"""

from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, aliased

import repositories.db_models as db_models
from .base import BaseRepository


class VoteRepository(BaseRepository[db_models.Vote]):
    """Repository for Vote entity database operations."""

    def __init__(self, db: Session):
        """
        Initialize vote repository.

        Args:
            db: Database session
        """
        super().__init__(db_models.Vote, db)

    def get_by_request_and_user(
        self, feature_request_id: int, user_id: int
    ) -> Optional[db_models.Vote]:
        """
        Get vote by feature request and user.

        Args:
            feature_request_id: Feature request ID
            user_id: User ID

        Returns:
            Vote if found, None otherwise
        """
        return (
            self.db.query(db_models.Vote)
            .filter(
                db_models.Vote.feature_request_id == feature_request_id,
                db_models.Vote.user_id == user_id,
            )
            .first()
        )

    def count_for_request(self, feature_request_id: int) -> int:
        """
        Count votes on a feature request.

        Args:
            feature_request_id: Feature request ID

        Returns:
            Number of votes
        """
        return (
            self.db.query(func.count(db_models.Vote.id))
            .filter(db_models.Vote.feature_request_id == feature_request_id)
            .scalar()
            or 0
        )

    def count_by_user(self, user_id: int) -> int:
        """
        Count votes cast by a user.

        Args:
            user_id: User ID

        Returns:
            Number of votes
        """
        return (
            self.db.query(func.count(db_models.Vote.id))
            .filter(db_models.Vote.user_id == user_id)
            .scalar()
            or 0
        )

    def get_votes_by_user_with_totals(
        self, user_id: int
    ) -> List[Tuple[db_models.Vote, int]]:
        """
        Load every vote a user cast with the target request's total vote count.

        The total counts every voter on the request, including this user.

        Args:
            user_id: User ID

        Returns:
            List of (Vote, total_votes_on_request) tuples
        """
        all_votes = aliased(db_models.Vote)
        totals = (
            self.db.query(
                all_votes.feature_request_id.label("feature_request_id"),
                func.count(all_votes.id).label("total"),
            )
            .group_by(all_votes.feature_request_id)
            .subquery()
        )
        rows = (
            self.db.query(db_models.Vote, totals.c.total)
            .join(
                totals,
                totals.c.feature_request_id == db_models.Vote.feature_request_id,
            )
            .filter(db_models.Vote.user_id == user_id)
            .order_by(db_models.Vote.id)
            .all()
        )
        return [(vote, int(total)) for vote, total in rows]

    def get_voted_request_ids(
        self, user_id: int, feature_request_ids: list[int]
    ) -> set[int]:
        """
        Return which of the given requests a user has voted on.

        Args:
            user_id: User ID
            feature_request_ids: Candidate feature request IDs

        Returns:
            Subset of IDs carrying a vote from the user
        """
        if not feature_request_ids:
            return set()
        rows = (
            self.db.query(db_models.Vote.feature_request_id)
            .filter(
                db_models.Vote.user_id == user_id,
                db_models.Vote.feature_request_id.in_(feature_request_ids),
            )
            .all()
        )
        return {row[0] for row in rows}
