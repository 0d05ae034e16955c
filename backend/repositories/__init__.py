"""
Repository pattern implementation for data access layer.
"""

from .account_deletion_repository import AccountDeletionRepository
from .activity_repository import ActivityRepository
from .base import BaseRepository
from .feature_request_repository import FeatureRequestRepository
from .unit_of_work import UnitOfWork
from .user_repository import UserRepository
from .vote_repository import VoteRepository

__all__ = [
    "AccountDeletionRepository",
    "ActivityRepository",
    "BaseRepository",
    "FeatureRequestRepository",
    "UnitOfWork",
    "UserRepository",
    "VoteRepository",
]
