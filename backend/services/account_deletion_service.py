"""
Account Deletion Service.

Deleting an account never silently destroys content other people engaged
with. Inside one transaction:

- requests with fewer than ``REQUEST_PRESERVE_THRESHOLD`` votes are deleted
  together with their votes and activities; the rest move to the SYSTEM
  user and get a note appended to their description;
- the user's votes on requests with fewer than ``VOTE_PRESERVE_THRESHOLD``
  total votes are deleted; the rest move to the SYSTEM user, unless SYSTEM
  already voted there or owns the request, in which case they are deleted;
- all of the user's activities and the user row are deleted.

If anything fails the whole transaction is rolled back.
"""

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import authentication.auth as auth
import models.schemas as schemas
import repositories.db_models as db_models
from models.config import settings
from models.exceptions import (
    PermissionDeniedException,
    SystemUserProtectedException,
    TransactionFailureException,
    UserNotFoundException,
    WrongPasswordException,
)
from repositories.unit_of_work import UnitOfWork
from repositories.user_repository import UserRepository


def annotate_description(description: str) -> str:
    """
    Append the deleted-author note, trimming the original text if needed.

    The result never exceeds the description length limit.
    """
    note = settings.DELETED_AUTHOR_NOTE
    room = db_models.DESCRIPTION_MAX_LENGTH - len(note)
    if len(description) > room:
        description = description[: max(room, 0)].rstrip()
    return f"{description}{note}"[: db_models.DESCRIPTION_MAX_LENGTH]


class AccountDeletionService:
    """Service for user account deletion with content preservation."""

    @staticmethod
    def delete_account(
        db: Session, user_id: int, password: str
    ) -> schemas.AccountDeletionResult:
        """
        Delete the caller's own account after re-checking their password.

        Args:
            db: Database session
            user_id: ID of the account to delete
            password: Password supplied by the user

        Returns:
            Counts of deleted and reassigned content

        Raises:
            UserNotFoundException: If user not found or has no password
            WrongPasswordException: If the password does not match
            SystemUserProtectedException: If the account is the SYSTEM user
            TransactionFailureException: If the transaction was rolled back
        """
        user = UserRepository(db).get_by_id(user_id)
        if not user or not user.hashed_password:
            raise UserNotFoundException("User not found")

        if user.is_system:
            raise SystemUserProtectedException()

        if not auth.verify_password(password, user.hashed_password):
            logger.warning(
                f"Account deletion failed: incorrect password for user {user_id}",
                user_id=user_id,
            )
            raise WrongPasswordException()

        logger.info(f"User {user_id} requested account deletion")
        return AccountDeletionService._run_deletion(db, user_id)

    @staticmethod
    def delete_user_as_admin(
        db: Session, admin: db_models.User, user_id: int
    ) -> schemas.AccountDeletionResult:
        """
        Delete another user's account from the admin panel.

        Same transaction as ``delete_account`` without the password check.

        Raises:
            UserNotFoundException: If user not found
            SystemUserProtectedException: If the target is the SYSTEM user
            PermissionDeniedException: If the admin targets themselves
            TransactionFailureException: If the transaction was rolled back
        """
        user = UserRepository(db).get_by_id(user_id)
        if not user:
            raise UserNotFoundException("User not found")

        if user.is_system:
            raise SystemUserProtectedException()

        if user.id == admin.id:
            raise PermissionDeniedException(
                "Use account settings to delete your own account"
            )

        logger.info(f"Admin {admin.id} deleting user {user_id}")
        return AccountDeletionService._run_deletion(db, user_id)

    @staticmethod
    def _run_deletion(db: Session, user_id: int) -> schemas.AccountDeletionResult:
        result = schemas.AccountDeletionResult(user_id=user_id)
        try:
            with UnitOfWork(db) as uow:
                system_user = uow.users.get_or_create_system_user(
                    settings.SYSTEM_USER_EMAIL, settings.SYSTEM_USER_NAME
                )
                AccountDeletionService._process_requests(
                    uow, user_id, system_user.id, result
                )
                AccountDeletionService._process_votes(
                    uow, user_id, system_user.id, result
                )
                result.deleted_activities = (
                    uow.account_deletion.delete_activities_by_user(user_id)
                )
                if uow.account_deletion.delete_user(user_id) != 1:
                    raise TransactionFailureException(
                        f"User {user_id} disappeared during deletion"
                    )
        except SQLAlchemyError as e:
            logger.exception(f"Account deletion for user {user_id} rolled back")
            raise TransactionFailureException(
                "Account deletion failed; nothing was changed"
            ) from e
        except TransactionFailureException:
            logger.error(f"Account deletion for user {user_id} rolled back")
            raise

        logger.info(
            f"Deleted account {user_id}",
            **result.model_dump(),
        )
        return result

    @staticmethod
    def _process_requests(
        uow: UnitOfWork,
        user_id: int,
        system_user_id: int,
        result: schemas.AccountDeletionResult,
    ) -> None:
        """Delete unpopular requests; hand popular ones to the SYSTEM user."""
        owned = uow.feature_requests.get_owned_with_vote_counts_for_update(user_id)

        to_delete = [
            request.id
            for request, votes in owned
            if votes < settings.REQUEST_PRESERVE_THRESHOLD
        ]
        to_keep = [
            request
            for request, votes in owned
            if votes >= settings.REQUEST_PRESERVE_THRESHOLD
        ]

        uow.account_deletion.delete_votes_on_requests(to_delete)
        uow.account_deletion.delete_activities_on_requests(to_delete)
        result.deleted_requests = uow.account_deletion.delete_requests(to_delete)

        for request in to_keep:
            uow.account_deletion.reassign_request(
                request.id, system_user_id, annotate_description(request.description)
            )
        result.reassigned_requests = len(to_keep)

    @staticmethod
    def _process_votes(
        uow: UnitOfWork,
        user_id: int,
        system_user_id: int,
        result: schemas.AccountDeletionResult,
    ) -> None:
        """Delete votes that don't matter; hand load-bearing ones to SYSTEM."""
        votes = uow.votes.get_votes_by_user_with_totals(user_id)

        candidates = [
            vote
            for vote, total in votes
            if total >= settings.VOTE_PRESERVE_THRESHOLD
        ]
        candidate_request_ids = [vote.feature_request_id for vote in candidates]
        already_voted = uow.votes.get_voted_request_ids(
            system_user_id, candidate_request_ids
        )
        system_owned = uow.feature_requests.owned_ids_among(
            system_user_id, candidate_request_ids
        )

        to_reassign = [
            vote.id
            for vote in candidates
            if vote.feature_request_id not in already_voted
            and vote.feature_request_id not in system_owned
        ]
        reassign_set = set(to_reassign)
        to_delete = [vote.id for vote, _ in votes if vote.id not in reassign_set]

        result.deleted_votes = uow.account_deletion.delete_votes(to_delete)
        result.reassigned_votes = uow.account_deletion.reassign_votes(
            to_reassign, system_user_id
        )
