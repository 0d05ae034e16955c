"""
Authentication Service

Handles registration, login, email verification and password reset.

Login attempts go through the LoginRateLimiter owned by the application;
a successful login clears the caller's window.
"""

import hashlib
import secrets
from datetime import timedelta

from loguru import logger
from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from authentication.auth import (
    authenticate_user,
    create_access_token,
    get_password_hash,
)
from helpers.password_validation import ensure_password_complexity
from helpers.time_utils import utc_now
from models.config import settings
from models.exceptions import (
    BusinessRuleException,
    EmailAlreadyRegisteredException,
    EmailDeliveryException,
    EmailNotVerifiedException,
    InvalidCredentialsException,
    InvalidTokenException,
    UserNotFoundException,
)
from repositories.user_repository import UserRepository
from services.email_service import EmailService
from services.rate_limit_service import LoginRateLimiter, resolve_identifier

FORGOT_PASSWORD_MESSAGE = (
    "If your email is registered, you will receive a password reset link."
)


def hash_token(token: str) -> str:
    """sha256 hex digest used to store reset tokens."""
    return hashlib.sha256(token.encode()).hexdigest()


class AuthService:
    """Service for authentication business logic."""

    @staticmethod
    def login(
        db: Session,
        rate_limiter: LoginRateLimiter,
        email: str,
        password: str,
        client_ip: str | None = None,
    ) -> schemas.Token:
        """
        Authenticate a user and create an access token.

        Args:
            db: Database session
            rate_limiter: Application login rate limiter
            email: User email
            password: User password
            client_ip: Caller address, used when no email was given

        Returns:
            Token object with access_token and token_type

        Raises:
            RateLimitExceededException: If too many attempts were made
            InvalidCredentialsException: If email or password is incorrect
            EmailNotVerifiedException: If the email is not verified yet
        """
        identifier = resolve_identifier(email, client_ip)
        rate_limiter.enforce(identifier)

        user = authenticate_user(db, email, password)
        if not user:
            logger.warning(f"Failed login attempt for {identifier}")
            raise InvalidCredentialsException("Incorrect email or password")

        if not user.is_verified:
            raise EmailNotVerifiedException()

        rate_limiter.reset(identifier)

        access_token = create_access_token(
            data={"sub": user.email},
            expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        )
        logger.info(f"User {user.id} logged in")
        # nosec B106: "bearer" is OAuth2 token type, not a password
        return schemas.Token(access_token=access_token, token_type="bearer")  # nosec B106

    @staticmethod
    def check_attempt(
        rate_limiter: LoginRateLimiter,
        email: str | None,
        client_ip: str | None = None,
    ) -> schemas.RateLimitStatus:
        """
        Count a login attempt and report whether it may proceed.

        Windows are only cleared by a successful ``login``; callers of this
        endpoint cannot reset them.

        Args:
            rate_limiter: Application login rate limiter
            email: Email the attempt is made for, if known
            client_ip: Caller address, used when no email was given

        Returns:
            The limiter's decision
        """
        identifier = resolve_identifier(email, client_ip)
        decision = rate_limiter.check(identifier)
        return schemas.RateLimitStatus(
            allowed=decision.allowed,
            remaining_attempts=decision.remaining_attempts,
            reset_at=decision.reset_at,
            message=decision.message,
        )

    @staticmethod
    def register(db: Session, data: schemas.UserCreate) -> db_models.User:
        """
        Create an unverified account and mail the verification link.

        A failed email does not undo the registration; the user can ask for
        a new link.

        Raises:
            ValidationException: If the password is too weak
            EmailAlreadyRegisteredException: If the email is taken
        """
        ensure_password_complexity(data.password)

        user_repo = UserRepository(db)
        email = data.email.lower()
        if user_repo.email_exists(email):
            raise EmailAlreadyRegisteredException()

        token = secrets.token_hex(32)
        user = user_repo.create(
            db_models.User(
                name=data.name.strip(),
                email=email,
                hashed_password=get_password_hash(data.password),
                role=db_models.UserRole.USER,
                email_verification_token=token,
                email_verification_expires=utc_now()
                + timedelta(hours=settings.EMAIL_VERIFICATION_EXPIRE_HOURS),
            )
        )
        logger.info(f"User {user.id} registered")

        try:
            EmailService.send_verification_email(user.email, token, user.name)
        except EmailDeliveryException:
            logger.error(f"Verification email to user {user.id} failed")

        return user

    @staticmethod
    def verify_email(db: Session, token: str) -> None:
        """
        Mark the email behind a verification token as verified.

        Raises:
            InvalidTokenException: If the token is unknown or expired
        """
        user_repo = UserRepository(db)
        user = user_repo.get_by_verification_token(token)
        if not user:
            raise InvalidTokenException()

        user.email_verified_at = utc_now()
        user.email_verification_token = None
        user.email_verification_expires = None
        user_repo.update(user)
        logger.info(f"User {user.id} verified their email")

    @staticmethod
    def resend_verification(db: Session, email: str) -> None:
        """
        Issue a new verification token and mail it.

        The new token is committed before sending, so a failed send still
        invalidates the previous link.

        Raises:
            UserNotFoundException: If no account uses the email
            BusinessRuleException: If the email is already verified
            EmailDeliveryException: If the email could not be sent
        """
        user_repo = UserRepository(db)
        user = user_repo.get_by_email(email.lower())
        if not user or user.is_system:
            raise UserNotFoundException("User not found")
        if user.is_verified:
            raise BusinessRuleException("Email is already verified")

        token = secrets.token_hex(32)
        user.email_verification_token = token
        user.email_verification_expires = utc_now() + timedelta(
            hours=settings.EMAIL_VERIFICATION_EXPIRE_HOURS
        )
        user_repo.update(user)

        EmailService.send_verification_email(user.email, token, user.name)

    @staticmethod
    def forgot_password(db: Session, email: str) -> str:
        """
        Start a password reset.

        Returns the same message whether or not the email is registered.

        Raises:
            EmailDeliveryException: If the email could not be sent
        """
        user_repo = UserRepository(db)
        user = user_repo.get_by_email(email.lower())
        if not user or user.is_system:
            logger.info("Password reset requested for unknown email")
            return FORGOT_PASSWORD_MESSAGE

        token = secrets.token_hex(32)
        user.reset_password_token = hash_token(token)
        user.reset_password_expires = utc_now() + timedelta(
            minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES
        )
        user_repo.update(user)

        EmailService.send_password_reset_email(user.email, token, user.name)
        logger.info(f"Password reset email sent to user {user.id}")
        return FORGOT_PASSWORD_MESSAGE

    @staticmethod
    def verify_reset_token(db: Session, token: str) -> None:
        """
        Raises:
            InvalidTokenException: If the token is unknown or expired
        """
        if not UserRepository(db).get_by_reset_token_hash(hash_token(token)):
            raise InvalidTokenException()

    @staticmethod
    def reset_password(db: Session, token: str, new_password: str) -> None:
        """
        Set a new password using a reset token. The token is single-use.

        Raises:
            InvalidTokenException: If the token is unknown or expired
            ValidationException: If the password is too weak
        """
        user_repo = UserRepository(db)
        user = user_repo.get_by_reset_token_hash(hash_token(token))
        if not user:
            raise InvalidTokenException()

        ensure_password_complexity(new_password)

        user.hashed_password = get_password_hash(new_password)
        user.reset_password_token = None
        user.reset_password_expires = None
        user_repo.update(user)
        logger.info(f"User {user.id} reset their password")
