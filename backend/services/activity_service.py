"""
Activity Service - read side of the activity log.
"""

from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from models.exceptions import PermissionDeniedException
from repositories.activity_repository import ActivityRepository

RECENT_ACTIVITY_LIMIT = 10


class ActivityService:
    """Service for reading a user's activity."""

    @staticmethod
    def get_recent_activity(
        db: Session,
        viewer: db_models.User,
        user_id: int,
        limit: int = RECENT_ACTIVITY_LIMIT,
    ) -> schemas.ActivityList:
        """
        Get a user's latest activities, newest first.

        Deleted requests are shown with the title captured when they were
        deleted.

        Args:
            db: Database session
            viewer: User asking
            user_id: User whose activity is requested
            limit: Maximum number of entries

        Returns:
            Activity list

        Raises:
            PermissionDeniedException: If the viewer asks for someone else's
        """
        if viewer.id != user_id:
            raise PermissionDeniedException("You can only view your own activity")

        rows = ActivityRepository(db).get_recent_for_user(user_id, limit)
        return schemas.ActivityList(
            activities=[
                schemas.ActivityItem(
                    id=activity.id,
                    type=activity.type,
                    feature_request_id=activity.feature_request_id,
                    feature_request_title=(
                        activity.deleted_request_title
                        if activity.type == db_models.ActivityType.DELETED
                        else live_title
                    ),
                    created_at=activity.created_at,
                )
                for activity, live_title in rows
            ]
        )
