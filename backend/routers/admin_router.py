from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

import authentication.auth as auth
import models.schemas as schemas
import repositories.db_models as db_models
from helpers.pagination import AdminPageSize, Skip
from repositories.database import get_db
from services import AccountDeletionService, UserService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users", response_model=List[schemas.User])
def list_users(
    skip: Skip = 0,
    limit: AdminPageSize = 100,
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_admin_user),
):
    """
    List accounts, newest first.

    The system account is never listed.
    """
    return UserService.list_users(db, skip=skip, limit=limit)


@router.post(
    "/users", response_model=schemas.User, status_code=status.HTTP_201_CREATED
)
def create_user(
    user: schemas.AdminUserCreate,
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_admin_user),
):
    """Create a verified account with the given role."""
    return UserService.create_user_as_admin(db, current_user, user)


@router.delete("/users/{user_id}", response_model=schemas.AccountDeletionResult)
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_admin_user),
) -> schemas.AccountDeletionResult:
    """
    Delete another user's account.

    Same content handling as self-deletion, without the password check.
    Domain exceptions are caught by centralized exception handlers.
    """
    return AccountDeletionService.delete_user_as_admin(db, current_user, user_id)
