"""User profile router endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import authentication.auth as auth
import models.schemas as schemas
import repositories.db_models as db_models
from repositories.database import get_db
from services import AccountDeletionService, ActivityService, UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=schemas.User)
def get_my_profile(
    current_user: db_models.User = Depends(auth.get_current_user),
) -> db_models.User:
    return current_user


@router.put("/me", response_model=schemas.User)
def update_my_profile(
    profile: schemas.UserProfileUpdate,
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_user),
) -> db_models.User:
    """Update the display name."""
    return UserService.update_profile(db, current_user, profile)


@router.put("/me/password", response_model=schemas.MessageResponse)
def change_my_password(
    body: schemas.PasswordChange,
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_user),
) -> schemas.MessageResponse:
    """
    Change password.

    Requires the current password. The new one must meet complexity rules.
    """
    UserService.change_password(
        db, current_user, body.current_password, body.new_password
    )
    return schemas.MessageResponse(message="Password changed successfully")


@router.post("/me/delete-account", response_model=schemas.AccountDeletionResult)
def delete_my_account(
    body: schemas.DeleteAccountRequest,
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_user),
) -> schemas.AccountDeletionResult:
    """
    Permanently delete the caller's account.

    Requests with enough votes and votes on popular requests are handed to
    the system account; everything else is removed. The whole operation is
    one transaction.
    """
    return AccountDeletionService.delete_account(db, current_user.id, body.password)


@router.get("/{user_id}/activity", response_model=schemas.ActivityList)
def get_user_activity(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_user),
) -> schemas.ActivityList:
    """Latest activity of a user. Users may only read their own."""
    return ActivityService.get_recent_activity(db, current_user, user_id)


@router.get("/{user_id}/votes/count", response_model=schemas.UserStats)
def count_user_votes(
    user_id: int, db: Session = Depends(get_db)
) -> schemas.UserStats:
    return UserService.count_votes(db, user_id)


@router.get("/{user_id}/feature-requests/count", response_model=schemas.UserStats)
def count_user_feature_requests(
    user_id: int, db: Session = Depends(get_db)
) -> schemas.UserStats:
    return UserService.count_feature_requests(db, user_id)
