"""
Activity repository for database operations.

Activities are append-only. The delete helpers here exist only for request
deletion and account deletion.
"""

from typing import Any, List, Optional

from sqlalchemy.orm import Session

import repositories.db_models as db_models
from .base import BaseRepository


class ActivityRepository(BaseRepository[db_models.Activity]):
    """Repository for Activity entity database operations."""

    def __init__(self, db: Session):
        """
        Initialize activity repository.

        Args:
            db: Database session
        """
        super().__init__(db_models.Activity, db)

    def record(
        self,
        activity_type: db_models.ActivityType,
        user_id: int,
        feature_request_id: Optional[int] = None,
        deleted_request_title: Optional[str] = None,
    ) -> db_models.Activity:
        """
        Append an activity to the session without committing.

        Args:
            activity_type: Kind of activity
            user_id: Acting user
            feature_request_id: Request acted on (None for ``deleted``)
            deleted_request_title: Title snapshot for ``deleted``

        Returns:
            The pending activity
        """
        activity = db_models.Activity(
            type=activity_type,
            user_id=user_id,
            feature_request_id=feature_request_id,
            deleted_request_title=deleted_request_title,
        )
        self.db.add(activity)
        return activity

    def get_recent_for_user(self, user_id: int, limit: int = 10) -> List[Any]:
        """
        Get a user's most recent activities with the live request title.

        Args:
            user_id: User ID
            limit: Maximum number of records to return

        Returns:
            Rows of (Activity, live_title); live_title is None when the
            activity has no request reference
        """
        return (
            self.db.query(db_models.Activity, db_models.FeatureRequest.title)
            .outerjoin(
                db_models.FeatureRequest,
                db_models.Activity.feature_request_id == db_models.FeatureRequest.id,
            )
            .filter(db_models.Activity.user_id == user_id)
            .order_by(db_models.Activity.created_at.desc(), db_models.Activity.id.desc())
            .limit(limit)
            .all()
        )

    def delete_for_request(self, feature_request_id: int) -> int:
        """
        Delete every activity referencing a feature request.

        Args:
            feature_request_id: Feature request ID

        Returns:
            Number of deleted records
        """
        return (
            self.db.query(db_models.Activity)
            .filter(db_models.Activity.feature_request_id == feature_request_id)
            .delete(synchronize_session=False)
        )
