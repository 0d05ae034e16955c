"""
Unit of work: one transaction spanning several repositories.

Usage::

    with UnitOfWork(db) as uow:
        uow.votes.add(vote)
        uow.activities.record(ActivityType.VOTED, user_id, request_id)

Leaving the block normally commits. Any exception rolls the session back
and propagates unchanged, so nothing written inside the block persists.
"""

from sqlalchemy.orm import Session

from repositories.account_deletion_repository import AccountDeletionRepository
from repositories.activity_repository import ActivityRepository
from repositories.feature_request_repository import FeatureRequestRepository
from repositories.user_repository import UserRepository
from repositories.vote_repository import VoteRepository


class UnitOfWork:
    """Transactional scope over a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db
        self.users = UserRepository(db)
        self.feature_requests = FeatureRequestRepository(db)
        self.votes = VoteRepository(db)
        self.activities = ActivityRepository(db)
        self.account_deletion = AccountDeletionRepository(db)
        self._committed = False

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            self.rollback()
            return False
        if not self._committed:
            self.commit()
        return False

    def commit(self) -> None:
        """Commit, or roll back and re-raise if the final flush fails."""
        try:
            self.db.commit()
        except Exception:
            self.rollback()
            raise
        self._committed = True

    def rollback(self) -> None:
        self.db.rollback()
