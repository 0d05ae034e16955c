"""
Vote service for business logic.
"""

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from models.exceptions import FeatureRequestNotFoundException, SelfVoteException
from repositories.feature_request_repository import FeatureRequestRepository
from repositories.unit_of_work import UnitOfWork
from repositories.vote_repository import VoteRepository


class VoteService:
    """Service for vote-related business logic."""

    @staticmethod
    def toggle_vote(
        db: Session, feature_request_id: int, user_id: int
    ) -> schemas.VoteToggleResult:
        """
        Add the user's vote if absent, remove it if present.

        The vote change and its activity row commit together. Two concurrent
        "add" calls from the same user race on the unique constraint; the
        loser is rolled back and reported as ``added``.

        Args:
            db: Database session
            feature_request_id: Feature request ID
            user_id: Voter's user ID

        Returns:
            Action taken and the request's vote count afterwards

        Raises:
            FeatureRequestNotFoundException: If request not found
            SelfVoteException: If the voter owns the request
        """
        request = FeatureRequestRepository(db).get_by_id(feature_request_id)
        if not request:
            raise FeatureRequestNotFoundException(feature_request_id)

        if request.user_id == user_id:
            raise SelfVoteException()

        existing_vote = VoteRepository(db).get_by_request_and_user(
            feature_request_id, user_id
        )

        try:
            with UnitOfWork(db) as uow:
                if existing_vote:
                    uow.votes.remove(existing_vote)
                    uow.activities.record(
                        db_models.ActivityType.UNVOTED, user_id, feature_request_id
                    )
                    action = "removed"
                else:
                    uow.votes.add(
                        db_models.Vote(
                            user_id=user_id, feature_request_id=feature_request_id
                        )
                    )
                    uow.activities.record(
                        db_models.ActivityType.VOTED, user_id, feature_request_id
                    )
                    action = "added"
        except IntegrityError:
            if existing_vote:
                raise
            logger.info(
                f"Concurrent vote by user {user_id} on request {feature_request_id} "
                "already recorded"
            )
            action = "added"

        vote_count = VoteRepository(db).count_for_request(feature_request_id)
        logger.info(
            f"Vote {action} on request {feature_request_id} by user {user_id}",
            vote_count=vote_count,
        )
        return schemas.VoteToggleResult(action=action, vote_count=vote_count)  # type: ignore[arg-type]
