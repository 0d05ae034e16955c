"""
Account Deletion Repository.

Bulk statements used by the account deletion transaction. None of these
methods commit; they run inside the caller's unit of work and bypass the
session identity map (``synchronize_session=False``).
"""

from sqlalchemy.orm import Session

import repositories.db_models as db_models

from .base import BaseRepository


class AccountDeletionRepository(BaseRepository[db_models.User]):
    """Repository for account deletion operations."""

    def __init__(self, db: Session):
        """
        Initialize account deletion repository.

        Args:
            db: Database session
        """
        super().__init__(db_models.User, db)

    def delete_votes_on_requests(self, request_ids: list[int]) -> int:
        """
        Delete votes cast by anyone on the given requests.

        Args:
            request_ids: List of feature request IDs

        Returns:
            Number of deleted records
        """
        if not request_ids:
            return 0
        return (
            self.db.query(db_models.Vote)
            .filter(db_models.Vote.feature_request_id.in_(request_ids))
            .delete(synchronize_session=False)
        )

    def delete_activities_on_requests(self, request_ids: list[int]) -> int:
        """
        Delete activities by anyone referencing the given requests.

        Args:
            request_ids: List of feature request IDs

        Returns:
            Number of deleted records
        """
        if not request_ids:
            return 0
        return (
            self.db.query(db_models.Activity)
            .filter(db_models.Activity.feature_request_id.in_(request_ids))
            .delete(synchronize_session=False)
        )

    def delete_requests(self, request_ids: list[int]) -> int:
        """
        Hard-delete feature requests.

        Votes and activities referencing them must already be gone.

        Args:
            request_ids: List of feature request IDs

        Returns:
            Number of deleted records
        """
        if not request_ids:
            return 0
        return (
            self.db.query(db_models.FeatureRequest)
            .filter(db_models.FeatureRequest.id.in_(request_ids))
            .delete(synchronize_session=False)
        )

    def reassign_request(
        self, request_id: int, new_owner_id: int, description: str
    ) -> int:
        """
        Transfer ownership of a request and replace its description.

        Args:
            request_id: Feature request ID
            new_owner_id: User ID of the new owner
            description: Annotated description

        Returns:
            Number of updated records
        """
        return (
            self.db.query(db_models.FeatureRequest)
            .filter(db_models.FeatureRequest.id == request_id)
            .update(
                {"user_id": new_owner_id, "description": description},
                synchronize_session=False,
            )
        )

    def delete_votes(self, vote_ids: list[int]) -> int:
        """
        Delete votes by ID.

        Args:
            vote_ids: List of vote IDs

        Returns:
            Number of deleted records
        """
        if not vote_ids:
            return 0
        return (
            self.db.query(db_models.Vote)
            .filter(db_models.Vote.id.in_(vote_ids))
            .delete(synchronize_session=False)
        )

    def reassign_votes(self, vote_ids: list[int], new_user_id: int) -> int:
        """
        Move votes to another voter.

        Args:
            vote_ids: List of vote IDs
            new_user_id: User ID of the new voter

        Returns:
            Number of updated records
        """
        if not vote_ids:
            return 0
        return (
            self.db.query(db_models.Vote)
            .filter(db_models.Vote.id.in_(vote_ids))
            .update({"user_id": new_user_id}, synchronize_session=False)
        )

    def delete_activities_by_user(self, user_id: int) -> int:
        """
        Delete every activity a user performed.

        Args:
            user_id: User ID

        Returns:
            Number of deleted records
        """
        return (
            self.db.query(db_models.Activity)
            .filter(db_models.Activity.user_id == user_id)
            .delete(synchronize_session=False)
        )

    def delete_user(self, user_id: int) -> int:
        """
        Delete the user row.

        Args:
            user_id: User ID

        Returns:
            Number of deleted records
        """
        return (
            self.db.query(db_models.User)
            .filter(db_models.User.id == user_id)
            .delete(synchronize_session=False)
        )
