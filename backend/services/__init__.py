"""
Services layer for business logic.

This package contains service modules that encapsulate business logic
separate from the API routes.
"""

from .account_deletion_service import AccountDeletionService
from .activity_service import ActivityService
from .auth_service import AuthService
from .feature_request_service import FeatureRequestService
from .rate_limit_service import LoginRateLimiter
from .user_service import UserService
from .vote_service import VoteService

__all__ = [
    "AccountDeletionService",
    "ActivityService",
    "AuthService",
    "FeatureRequestService",
    "LoginRateLimiter",
    "UserService",
    "VoteService",
]
