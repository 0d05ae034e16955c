"""
Domain exceptions for the application.

Services raise these; the centralized handlers in main.py turn them into
HTTP responses. Every exception carries a stable ``error_code`` naming the
failure kind, so callers outside HTTP (CLI, tests) can branch on the kind
without depending on status codes.

Correlation IDs tie an exception to the request that produced it.
"""

from datetime import datetime

from core.correlation import generate_correlation_id, get_correlation_id


class DomainException(Exception):
    """
    Base class for all domain exceptions.

    Attributes:
        message: Human-readable error message.
        correlation_id: Unique ID for error tracking (auto-generated if not provided).
        error_code: Stable identifier of the failure kind.
    """

    error_code = "DomainError"

    def __init__(self, message: str, correlation_id: str | None = None):
        self.message = message
        # Use request correlation ID if available, otherwise generate new one
        self.correlation_id = (
            correlation_id or get_correlation_id() or generate_correlation_id()
        )
        super().__init__(self.message)


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    error_code = "NotFound"


class PermissionDeniedException(DomainException):
    """Raised when user lacks required permissions."""

    error_code = "PermissionDenied"


class ValidationException(DomainException):
    """Raised when input validation fails."""

    error_code = "ValidationError"


class ConflictException(DomainException):
    """Raised when operation conflicts with existing data."""

    error_code = "Conflict"


class AuthenticationException(DomainException):
    """Raised when authentication fails."""

    error_code = "AuthenticationFailed"


class AlreadyExistsException(DomainException):
    """Raised when trying to create a resource that already exists."""

    error_code = "AlreadyExists"


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    error_code = "BusinessRuleViolation"


# Specific exceptions for domain entities


class UserNotFoundException(NotFoundException):
    """User not found."""

    pass


class FeatureRequestNotFoundException(NotFoundException):
    """Feature request not found."""

    def __init__(self, request_id: int) -> None:
        super().__init__(f"Feature request {request_id} not found")
        self.request_id = request_id


class EmailAlreadyRegisteredException(AlreadyExistsException):
    """Email address already belongs to an account."""

    def __init__(self) -> None:
        super().__init__("Email already in use")


class InvalidCredentialsException(AuthenticationException):
    """Invalid email or password."""

    pass


class EmailNotVerifiedException(AuthenticationException):
    """Login attempted before the email address was verified."""

    error_code = "EmailNotVerified"

    def __init__(self) -> None:
        super().__init__("Please verify your email before logging in")


class InvalidTokenException(ValidationException):
    """Verification or reset token is unknown or expired."""

    error_code = "InvalidToken"

    def __init__(self, message: str = "Invalid or expired token") -> None:
        super().__init__(message)


class InsufficientPermissionsException(PermissionDeniedException):
    """User doesn't have sufficient permissions."""

    pass


# Feature request lifecycle exceptions


class NotOwnerException(PermissionDeniedException):
    """Raised when a user edits or deletes a request they don't own."""

    error_code = "NotOwner"

    def __init__(self, action: str = "modify") -> None:
        super().__init__(f"You can only {action} your own requests")
        self.action = action


class HasVotesException(ConflictException):
    """Raised when a request with votes is edited or deleted by its owner."""

    error_code = "HasVotes"

    def __init__(self, action: str = "modify") -> None:
        super().__init__(f"Cannot {action} a request that has votes")
        self.action = action


class SelfVoteException(BusinessRuleException):
    """Raised when a user votes on their own request."""

    error_code = "SelfVote"

    def __init__(self) -> None:
        super().__init__("You cannot vote on your own request")


class InvalidStatusException(ValidationException):
    """Raised when a status value is outside the allowed set."""

    error_code = "InvalidStatus"

    def __init__(self, status: str) -> None:
        super().__init__(f"Invalid status: {status}")
        self.status = status


# Account exceptions


class WrongPasswordException(AuthenticationException):
    """Raised when a password re-check fails (account deletion, password change)."""

    error_code = "WrongPassword"

    def __init__(self, message: str = "Password is incorrect") -> None:
        super().__init__(message)


class SystemUserProtectedException(PermissionDeniedException):
    """Raised when an operation would delete or log in as the SYSTEM user."""

    error_code = "SystemUserProtected"

    def __init__(self) -> None:
        super().__init__("The system account cannot be modified")


# ============================================================================
# Rate Limiting Exceptions
# ============================================================================


class RateLimitExceededException(DomainException):
    """Raised when rate limit is exceeded."""

    error_code = "RateLimited"

    def __init__(
        self,
        message: str = "Rate limit exceeded. Please try again later.",
        retry_after: int | None = None,
        reset_at: datetime | None = None,
    ):
        super().__init__(message)
        self.retry_after = retry_after
        self.reset_at = reset_at


# ============================================================================
# Infrastructure Exceptions (logged as unexpected)
# ============================================================================


class TransactionFailureException(DomainException):
    """Raised when a transaction was rolled back by the store."""

    error_code = "TransactionFailure"


class InfrastructureException(DomainException):
    """Raised when the database cannot be reached."""

    error_code = "InfrastructureError"


class EmailDeliveryException(DomainException):
    """Raised when a transactional email could not be sent."""

    error_code = "EmailDelivery"

    def __init__(self, message: str = "Failed to send email") -> None:
        super().__init__(message)
