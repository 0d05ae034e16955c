from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

import authentication.auth as auth
import models.schemas as schemas
import repositories.db_models as db_models
from helpers.pagination import BoardPageSize, Skip
from repositories.database import get_db
from repositories.feature_request_repository import SORT_VOTES, VIEW_ALL
from services import FeatureRequestService, VoteService

router = APIRouter(prefix="/feature-requests", tags=["feature-requests"])


@router.get("/", response_model=List[schemas.FeatureRequestWithVotes])
def list_feature_requests(
    status_filter: Optional[str] = Query(None, alias="status"),
    view: str = VIEW_ALL,
    sort: str = SORT_VOTES,
    skip: Skip = 0,
    limit: BoardPageSize = 50,
    db: Session = Depends(get_db),
    current_user: Optional[db_models.User] = Depends(auth.get_current_user_optional),
):
    """
    List feature requests with vote counts.

    ``status`` takes a status name, ``OPEN`` or ``ALL``. ``view`` narrows to
    ``MINE`` or ``VOTED`` for signed-in users. ``sort`` is ``votes``,
    ``newest`` or ``oldest``.
    """
    user_id = current_user.id if current_user else None
    return FeatureRequestService.list_feature_requests(
        db,
        current_user_id=user_id,
        status=status_filter,
        view=view,
        sort=sort,
        skip=skip,
        limit=limit,
    )


@router.post(
    "/",
    response_model=schemas.FeatureRequestWithVotes,
    status_code=status.HTTP_201_CREATED,
)
def create_feature_request(
    feature_request: schemas.FeatureRequestCreate,
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_user),
):
    """
    Create a new feature request.

    Domain exceptions are caught by centralized exception handlers.
    """
    return FeatureRequestService.create_feature_request(
        db, current_user.id, feature_request
    )


@router.get("/{request_id}", response_model=schemas.FeatureRequestWithVotes)
def get_feature_request(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[db_models.User] = Depends(auth.get_current_user_optional),
):
    user_id = current_user.id if current_user else None
    return FeatureRequestService.get_feature_request(db, request_id, user_id)


@router.put("/{request_id}", response_model=schemas.FeatureRequestWithVotes)
def edit_feature_request(
    request_id: int,
    feature_request: schemas.FeatureRequestUpdate,
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_user),
):
    """Edit own request. Refused once anyone has voted on it."""
    return FeatureRequestService.edit_feature_request(
        db, request_id, current_user.id, feature_request
    )


@router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_feature_request(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_user),
) -> Response:
    """Delete own request. Refused once anyone has voted on it."""
    FeatureRequestService.delete_feature_request(db, request_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{request_id}/vote", response_model=schemas.VoteToggleResult)
def toggle_vote(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_user),
):
    """Add the caller's vote, or remove it if already present."""
    return VoteService.toggle_vote(db, request_id, current_user.id)


@router.patch("/{request_id}/status", response_model=schemas.FeatureRequestWithVotes)
def update_status(
    request_id: int,
    body: schemas.FeatureRequestStatusUpdate,
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_user),
):
    """Change a request's status (admin only)."""
    return FeatureRequestService.update_status(
        db, current_user, request_id, body.status
    )
