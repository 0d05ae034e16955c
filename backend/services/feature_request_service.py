"""
Feature Request Service

Handles the feature request lifecycle: creation, listing, the owner edit and
delete guard, and admin status triage.

A request that has received a vote is frozen for its author: it can no
longer be edited or deleted by them. Admins change status without going
through that guard.
"""

from typing import Any, List, Optional

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from models.exceptions import (
    AuthenticationException,
    FeatureRequestNotFoundException,
    HasVotesException,
    InsufficientPermissionsException,
    InvalidStatusException,
    NotOwnerException,
    ValidationException,
)
from repositories.feature_request_repository import (
    SORT_NEWEST,
    SORT_OLDEST,
    SORT_VOTES,
    VIEW_ALL,
    VIEW_MINE,
    VIEW_VOTED,
    FeatureRequestRepository,
)
from repositories.unit_of_work import UnitOfWork
from repositories.vote_repository import VoteRepository

STATUS_FILTER_ALL = "ALL"
STATUS_FILTER_OPEN = "OPEN"

# Statuses hidden by the OPEN filter
CLOSED_STATUSES = (
    db_models.FeatureRequestStatus.COMPLETED,
    db_models.FeatureRequestStatus.IN_PROGRESS,
    db_models.FeatureRequestStatus.REJECTED,
)

VALID_SORTS = (SORT_VOTES, SORT_NEWEST, SORT_OLDEST)
VALID_VIEWS = (VIEW_ALL, VIEW_MINE, VIEW_VOTED)


def parse_status(value: str) -> db_models.FeatureRequestStatus:
    """
    Convert a status string to the enum.

    Raises:
        InvalidStatusException: If the value is not a known status
    """
    try:
        return db_models.FeatureRequestStatus(value.strip().upper())
    except (ValueError, AttributeError):
        raise InvalidStatusException(str(value))


def parse_status_filter(
    value: Optional[str],
) -> Optional[List[db_models.FeatureRequestStatus]]:
    """Translate a list filter into the statuses to keep (None keeps all)."""
    if value is None or value.upper() == STATUS_FILTER_ALL:
        return None
    if value.upper() == STATUS_FILTER_OPEN:
        return [s for s in db_models.FeatureRequestStatus if s not in CLOSED_STATUSES]
    return [parse_status(value)]


def _validate_content(title: str, description: str) -> tuple[str, str]:
    title = title.strip()
    description = description.strip()
    if not title:
        raise ValidationException("Title is required")
    if not description:
        raise ValidationException("Description is required")
    if len(title) > db_models.TITLE_MAX_LENGTH:
        raise ValidationException(
            f"Title must be at most {db_models.TITLE_MAX_LENGTH} characters"
        )
    if len(description) > db_models.DESCRIPTION_MAX_LENGTH:
        raise ValidationException(
            f"Description must be at most {db_models.DESCRIPTION_MAX_LENGTH} characters"
        )
    return title, description


def _to_schema(row: Any) -> schemas.FeatureRequestWithVotes:
    request, author_name, vote_count, has_voted = row
    return schemas.FeatureRequestWithVotes(
        id=request.id,
        title=request.title,
        description=request.description,
        status=request.status,
        user_id=request.user_id,
        created_at=request.created_at,
        updated_at=request.updated_at,
        author_name=author_name,
        vote_count=int(vote_count or 0),
        has_voted=bool(has_voted),
    )


class FeatureRequestService:
    """Service for managing feature requests."""

    @staticmethod
    def create_feature_request(
        db: Session, user_id: int, data: schemas.FeatureRequestCreate
    ) -> schemas.FeatureRequestWithVotes:
        """
        Create a request owned by the user and log a ``created`` activity.

        Args:
            db: Database session
            user_id: Author's user ID
            data: Title and description

        Returns:
            The new request with a vote count of zero

        Raises:
            ValidationException: If title or description is empty or too long
        """
        title, description = _validate_content(data.title, data.description)

        with UnitOfWork(db) as uow:
            request = db_models.FeatureRequest(
                title=title,
                description=description,
                status=db_models.FeatureRequestStatus.PENDING,
                user_id=user_id,
            )
            uow.feature_requests.add(request)
            uow.feature_requests.flush()
            uow.activities.record(
                db_models.ActivityType.CREATED, user_id, request.id
            )

        logger.info(f"Feature request {request.id} created by user {user_id}")
        return FeatureRequestService.get_feature_request(db, request.id, user_id)

    @staticmethod
    def list_feature_requests(
        db: Session,
        current_user_id: Optional[int] = None,
        status: Optional[str] = None,
        view: str = VIEW_ALL,
        sort: str = SORT_VOTES,
        skip: int = 0,
        limit: int = 50,
    ) -> List[schemas.FeatureRequestWithVotes]:
        """
        List requests with vote counts.

        Args:
            db: Database session
            current_user_id: Caller's user ID (None for anonymous)
            status: Exact status, ``OPEN`` or ``ALL``
            view: ``ALL``, ``MINE`` or ``VOTED``
            sort: ``votes``, ``newest`` or ``oldest``
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            Matching requests

        Raises:
            InvalidStatusException: If status is not recognized
            ValidationException: If view or sort is not recognized
            AuthenticationException: If MINE or VOTED is asked anonymously
        """
        statuses = parse_status_filter(status)

        view = (view or VIEW_ALL).upper()
        if view not in VALID_VIEWS:
            raise ValidationException(f"Invalid view: {view}")
        if view != VIEW_ALL and current_user_id is None:
            raise AuthenticationException("Sign in to filter your own requests")

        sort = (sort or SORT_VOTES).lower()
        if sort not in VALID_SORTS:
            raise ValidationException(f"Invalid sort: {sort}")

        rows = FeatureRequestRepository(db).list_with_vote_counts(
            statuses=statuses,
            view=view,
            current_user_id=current_user_id,
            sort=sort,
            skip=skip,
            limit=limit,
        )
        return [_to_schema(row) for row in rows]

    @staticmethod
    def get_feature_request(
        db: Session, request_id: int, current_user_id: Optional[int] = None
    ) -> schemas.FeatureRequestWithVotes:
        """
        Get a request with its vote count.

        Raises:
            FeatureRequestNotFoundException: If request not found
        """
        row = FeatureRequestRepository(db).get_with_vote_count(
            request_id, current_user_id
        )
        if row is None:
            raise FeatureRequestNotFoundException(request_id)
        return _to_schema(row)

    @staticmethod
    def _authorize_owner_change(
        db: Session, request_id: int, user_id: int, action: str
    ) -> db_models.FeatureRequest:
        request = FeatureRequestRepository(db).get_by_id(request_id)
        if not request:
            raise FeatureRequestNotFoundException(request_id)

        if request.user_id != user_id:
            logger.warning(
                f"User {user_id} tried to {action} request {request_id} they don't own"
            )
            raise NotOwnerException(action)

        if VoteRepository(db).count_for_request(request_id) > 0:
            raise HasVotesException(action)

        return request

    @staticmethod
    def authorize_edit(
        db: Session, request_id: int, user_id: int
    ) -> db_models.FeatureRequest:
        """
        Check that a user may edit a request.

        Checks run in order and stop at the first failure: existence,
        ownership, then absence of votes.

        Args:
            db: Database session
            request_id: Feature request ID
            user_id: Acting user's ID

        Returns:
            The loaded request

        Raises:
            FeatureRequestNotFoundException: If request not found
            NotOwnerException: If the user is not the author
            HasVotesException: If the request has at least one vote
        """
        return FeatureRequestService._authorize_owner_change(
            db, request_id, user_id, "edit"
        )

    @staticmethod
    def authorize_delete(
        db: Session, request_id: int, user_id: int
    ) -> db_models.FeatureRequest:
        """
        Check that a user may delete a request.

        Same checks and order as ``authorize_edit``.
        """
        return FeatureRequestService._authorize_owner_change(
            db, request_id, user_id, "delete"
        )

    @staticmethod
    def edit_feature_request(
        db: Session,
        request_id: int,
        user_id: int,
        data: schemas.FeatureRequestUpdate,
    ) -> schemas.FeatureRequestWithVotes:
        """
        Replace title and description of an unvoted request owned by the user.

        Raises:
            FeatureRequestNotFoundException: If request not found
            NotOwnerException: If the user is not the author
            HasVotesException: If the request has votes
            ValidationException: If title or description is invalid
        """
        request = FeatureRequestService.authorize_edit(db, request_id, user_id)
        title, description = _validate_content(data.title, data.description)

        with UnitOfWork(db) as uow:
            request.title = title
            request.description = description
            uow.activities.record(db_models.ActivityType.EDITED, user_id, request_id)

        logger.info(f"Feature request {request_id} edited by user {user_id}")
        return FeatureRequestService.get_feature_request(db, request_id, user_id)

    @staticmethod
    def delete_feature_request(db: Session, request_id: int, user_id: int) -> None:
        """
        Delete an unvoted request owned by the user.

        Records a ``deleted`` activity holding only the title, removes every
        other activity pointing at the request, then removes the request,
        all in one transaction.

        Raises:
            FeatureRequestNotFoundException: If request not found
            NotOwnerException: If the user is not the author
            HasVotesException: If the request has votes
        """
        request = FeatureRequestService.authorize_delete(db, request_id, user_id)
        title = request.title

        try:
            with UnitOfWork(db) as uow:
                # Votes cast since the guard ran block the delete too
                uow.feature_requests.lock(request_id)
                if uow.votes.count_for_request(request_id):
                    raise HasVotesException("delete")
                uow.activities.record(
                    db_models.ActivityType.DELETED,
                    user_id,
                    feature_request_id=None,
                    deleted_request_title=title,
                )
                uow.activities.delete_for_request(request_id)
                uow.feature_requests.remove(request)
        except IntegrityError as e:
            logger.warning(
                f"Delete of request {request_id} lost a race with a new vote"
            )
            raise HasVotesException("delete") from e

        logger.info(f"Feature request {request_id} deleted by user {user_id}")

    @staticmethod
    def update_status(
        db: Session, actor: db_models.User, request_id: int, status: str
    ) -> schemas.FeatureRequestWithVotes:
        """
        Set a request's status (admin only).

        Votes and ownership do not matter here.

        Args:
            db: Database session
            actor: Acting user
            request_id: Feature request ID
            status: New status name

        Returns:
            The updated request

        Raises:
            InsufficientPermissionsException: If the actor is not an admin
            InvalidStatusException: If the status is not recognized
            FeatureRequestNotFoundException: If request not found
        """
        if not actor.is_admin:
            raise InsufficientPermissionsException("Only admins can change status")

        new_status = parse_status(status)

        repo = FeatureRequestRepository(db)
        request = repo.get_by_id(request_id)
        if not request:
            raise FeatureRequestNotFoundException(request_id)

        old_status = request.status
        request.status = new_status
        repo.update(request)

        logger.info(
            f"Feature request {request_id} status {old_status.value} -> "
            f"{new_status.value} by admin {actor.id}"
        )
        return FeatureRequestService.get_feature_request(db, request_id, actor.id)
