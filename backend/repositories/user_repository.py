"""
User repository for database operations.
"""

from typing import List, Optional

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import repositories.db_models as db_models
from helpers.time_utils import utc_now
from models.exceptions import TransactionFailureException
from .base import BaseRepository

_UPSERT_DIALECTS = {
    "sqlite": sqlite_insert,
    "postgresql": pg_insert,
}


class UserRepository(BaseRepository[db_models.User]):
    """Repository for User entity database operations."""

    def __init__(self, db: Session):
        """
        Initialize user repository.

        Args:
            db: Database session
        """
        super().__init__(db_models.User, db)

    def get_by_email(self, email: str) -> Optional[db_models.User]:
        """
        Get user by email.

        Args:
            email: User email

        Returns:
            User if found, None otherwise
        """
        return (
            self.db.query(db_models.User).filter(db_models.User.email == email).first()
        )

    def email_exists(self, email: str) -> bool:
        """
        Check if email already exists.

        Args:
            email: Email to check

        Returns:
            True if email exists, False otherwise
        """
        return (
            self.db.query(db_models.User.id)
            .filter(db_models.User.email == email)
            .first()
            is not None
        )

    def get_by_verification_token(self, token: str) -> Optional[db_models.User]:
        """
        Get user holding an unexpired email verification token.

        Args:
            token: Verification token from the email link

        Returns:
            User if the token matches and has not expired, None otherwise
        """
        return (
            self.db.query(db_models.User)
            .filter(
                db_models.User.email_verification_token == token,
                db_models.User.email_verification_expires > utc_now(),
            )
            .first()
        )

    def get_by_reset_token_hash(self, token_hash: str) -> Optional[db_models.User]:
        """
        Get user holding an unexpired password reset token.

        Args:
            token_hash: sha256 hex digest of the token from the email link

        Returns:
            User if the hash matches and has not expired, None otherwise
        """
        return (
            self.db.query(db_models.User)
            .filter(
                db_models.User.reset_password_token == token_hash,
                db_models.User.reset_password_expires > utc_now(),
            )
            .first()
        )

    def list_users(self, skip: int = 0, limit: int = 100) -> List[db_models.User]:
        """
        List regular and admin users, newest first. The SYSTEM user is hidden.

        Args:
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            List of users
        """
        return (
            self.db.query(db_models.User)
            .filter(db_models.User.role != db_models.UserRole.SYSTEM)
            .order_by(db_models.User.created_at.desc(), db_models.User.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_or_create_system_user(self, email: str, name: str) -> db_models.User:
        """
        Resolve the SYSTEM user, creating it if needed.

        Runs as ``INSERT ... ON CONFLICT (email) DO NOTHING`` followed by a
        select, so concurrent callers converge on the same row through the
        unique constraint on ``email``. Does not commit; the caller's
        transaction owns the insert.

        Args:
            email: Reserved email of the SYSTEM user
            name: Display name of the SYSTEM user

        Returns:
            The SYSTEM user

        Raises:
            TransactionFailureException: If the email belongs to a regular
                account, or the row could not be read back
        """
        values = {
            "email": email,
            "name": name,
            "role": db_models.UserRole.SYSTEM,
            "hashed_password": None,
        }
        dialect = self.db.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)

        if insert is not None:
            stmt = (
                insert(db_models.User)
                .values(**values)
                .on_conflict_do_nothing(index_elements=["email"])
            )
            self.db.execute(stmt)
        elif not self.email_exists(email):
            # No native upsert: let the unique constraint settle the race
            try:
                with self.db.begin_nested():
                    self.db.add(db_models.User(**values))
            except IntegrityError:
                pass

        system_user = self.get_by_email(email)
        if system_user is None or system_user.role != db_models.UserRole.SYSTEM:
            raise TransactionFailureException(
                f"Reserved system email {email} is not held by the SYSTEM user"
            )
        return system_user
