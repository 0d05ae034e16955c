"""
Database models using SQLAlchemy 2.0 style with Mapped type hints.

Vote counts are never stored on a row; they are always computed from the
``votes`` table so they cannot drift.
"""

import enum
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from repositories.database import Base

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500


class UserRole(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"
    SYSTEM = "SYSTEM"  # Sentinel that owns content kept after account deletion


class FeatureRequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"
    ACCEPTED = "ACCEPTED"


class ActivityType(str, enum.Enum):
    CREATED = "created"
    EDITED = "edited"
    DELETED = "deleted"
    VOTED = "voted"
    UNVOTED = "unvoted"


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    email: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
    # Null for identities that sign in through an external provider
    hashed_password: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    email_verified_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True
    )
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole), default=UserRole.USER, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utc_now, onupdate=_utc_now
    )

    # Account tokens
    email_verification_token: Mapped[Optional[str]] = mapped_column(
        String, nullable=True, index=True
    )
    email_verification_expires: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True
    )
    # sha256 of the token mailed to the user
    reset_password_token: Mapped[Optional[str]] = mapped_column(
        String, nullable=True, index=True
    )
    reset_password_expires: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True
    )

    # Relationships
    feature_requests: Mapped[List["FeatureRequest"]] = relationship(
        "FeatureRequest", back_populates="author"
    )
    votes: Mapped[List["Vote"]] = relationship("Vote", back_populates="user")
    activities: Mapped[List["Activity"]] = relationship(
        "Activity", back_populates="user"
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_system(self) -> bool:
        return self.role == UserRole.SYSTEM

    @property
    def is_verified(self) -> bool:
        return self.email_verified_at is not None


class FeatureRequest(Base):
    __tablename__ = "feature_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH), nullable=False)
    description: Mapped[str] = mapped_column(
        Text, nullable=False, doc="At most DESCRIPTION_MAX_LENGTH characters"
    )
    status: Mapped[FeatureRequestStatus] = mapped_column(
        Enum(FeatureRequestStatus),
        default=FeatureRequestStatus.PENDING,
        nullable=False,
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utc_now, onupdate=_utc_now
    )

    # Relationships
    author: Mapped["User"] = relationship("User", back_populates="feature_requests")
    votes: Mapped[List["Vote"]] = relationship(
        "Vote", back_populates="feature_request"
    )
    activities: Mapped[List["Activity"]] = relationship(
        "Activity", back_populates="feature_request"
    )

    __table_args__ = (
        Index("ix_feature_requests_status", "status"),
        Index("ix_feature_requests_user", "user_id"),
    )


class Vote(Base):
    __tablename__ = "votes"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "feature_request_id", name="uq_vote_user_feature_request"
        ),
        Index("ix_votes_feature_request", "feature_request_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    feature_request_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("feature_requests.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="votes")
    feature_request: Mapped["FeatureRequest"] = relationship(
        "FeatureRequest", back_populates="votes"
    )


class Activity(Base):
    """
    Append-only activity record.

    A ``deleted`` activity keeps only ``deleted_request_title``; its
    ``feature_request_id`` is always null because the request row is gone.
    """

    __tablename__ = "activities"
    __table_args__ = (
        Index("ix_activities_user_created", "user_id", "created_at"),
        Index("ix_activities_feature_request", "feature_request_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    type: Mapped[ActivityType] = mapped_column(Enum(ActivityType), nullable=False)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    feature_request_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("feature_requests.id"), nullable=True
    )
    deleted_request_title: Mapped[Optional[str]] = mapped_column(
        String(TITLE_MAX_LENGTH), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="activities")
    feature_request: Mapped[Optional["FeatureRequest"]] = relationship(
        "FeatureRequest", back_populates="activities"
    )
