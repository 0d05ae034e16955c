"""
User Service

Profile management for the signed-in user, public counters, and admin user
provisioning.
"""

from typing import List

from loguru import logger
from sqlalchemy.orm import Session

import authentication.auth as auth
import models.schemas as schemas
import repositories.db_models as db_models
from helpers.password_validation import ensure_password_complexity
from helpers.time_utils import utc_now
from models.exceptions import (
    EmailAlreadyRegisteredException,
    UserNotFoundException,
    ValidationException,
    WrongPasswordException,
)
from repositories.feature_request_repository import FeatureRequestRepository
from repositories.user_repository import UserRepository
from repositories.vote_repository import VoteRepository


class UserService:
    """Service for user-related business logic."""

    @staticmethod
    def get_user_by_id_or_raise(db: Session, user_id: int) -> db_models.User:
        """
        Get user by ID.

        Raises:
            UserNotFoundException: If user not found
        """
        user = UserRepository(db).get_by_id(user_id)
        if not user:
            raise UserNotFoundException("User not found")
        return user

    @staticmethod
    def update_profile(
        db: Session, user: db_models.User, data: schemas.UserProfileUpdate
    ) -> db_models.User:
        """
        Update the user's display name.

        Args:
            db: Database session
            user: Signed-in user
            data: New profile values

        Returns:
            Updated user

        Raises:
            ValidationException: If the name is blank
        """
        name = data.name.strip()
        if not name:
            raise ValidationException("Name is required")

        user.name = name
        updated = UserRepository(db).update(user)
        logger.info(f"User {user.id} updated their profile")
        return updated

    @staticmethod
    def change_password(
        db: Session, user: db_models.User, current_password: str, new_password: str
    ) -> None:
        """
        Change the user's password after checking the current one.

        Args:
            db: Database session
            user: Signed-in user
            current_password: Current password
            new_password: New password

        Raises:
            UserNotFoundException: If the account has no password set
            WrongPasswordException: If current password is incorrect
            ValidationException: If the new password is too weak
        """
        if not user.hashed_password:
            raise UserNotFoundException("User not found or no password set")

        if not auth.verify_password(current_password, user.hashed_password):
            logger.warning(f"Password change failed for user {user.id}")
            raise WrongPasswordException("Current password is incorrect")

        ensure_password_complexity(new_password)

        user.hashed_password = auth.get_password_hash(new_password)
        UserRepository(db).update(user)
        logger.info(f"User {user.id} changed their password")

    @staticmethod
    def count_votes(db: Session, user_id: int) -> schemas.UserStats:
        return schemas.UserStats(count=VoteRepository(db).count_by_user(user_id))

    @staticmethod
    def count_feature_requests(db: Session, user_id: int) -> schemas.UserStats:
        return schemas.UserStats(
            count=FeatureRequestRepository(db).count_by_user(user_id)
        )

    @staticmethod
    def list_users(db: Session, skip: int = 0, limit: int = 100) -> List[db_models.User]:
        """List users for the admin panel, newest first."""
        return UserRepository(db).list_users(skip=skip, limit=limit)

    @staticmethod
    def create_user_as_admin(
        db: Session, admin: db_models.User, data: schemas.AdminUserCreate
    ) -> db_models.User:
        """
        Provision an account from the admin panel.

        Admin-created accounts are verified immediately.

        Raises:
            ValidationException: If the role is SYSTEM or the password is weak
            EmailAlreadyRegisteredException: If the email is taken
        """
        if data.role == db_models.UserRole.SYSTEM:
            raise ValidationException("Cannot create SYSTEM users")

        ensure_password_complexity(data.password)

        user_repo = UserRepository(db)
        email = data.email.lower()
        if user_repo.email_exists(email):
            raise EmailAlreadyRegisteredException()

        user = user_repo.create(
            db_models.User(
                name=data.name.strip(),
                email=email,
                hashed_password=auth.get_password_hash(data.password),
                role=data.role,
                email_verified_at=utc_now(),
            )
        )
        logger.info(f"Admin {admin.id} created user {user.id} with role {user.role.value}")
        return user
