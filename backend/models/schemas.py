from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from repositories.db_models import (
    DESCRIPTION_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    ActivityType,
    FeatureRequestStatus,
    UserRole,
)


# User Schemas
class UserBase(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=100)


class UserCreate(UserBase):
    password: str


class User(BaseModel):
    id: int
    email: str
    name: Optional[str] = None
    role: UserRole
    email_verified_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# User Profile Management Schemas
class UserProfileUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class PasswordChange(BaseModel):
    current_password: str
    new_password: str


class DeleteAccountRequest(BaseModel):
    password: str


class AccountDeletionResult(BaseModel):
    """What the deletion transaction did with the departing user's content."""

    user_id: int
    deleted_requests: int = 0
    reassigned_requests: int = 0
    deleted_votes: int = 0
    reassigned_votes: int = 0
    deleted_activities: int = 0


class UserStats(BaseModel):
    count: int


# User Management Schemas (Admin)
class AdminUserCreate(UserCreate):
    # SYSTEM is rejected by the service
    role: UserRole = UserRole.USER


# Token Schemas
class Token(BaseModel):
    access_token: str
    token_type: str


class TokenData(BaseModel):
    email: Optional[str] = None


# Auth flow Schemas
class MessageResponse(BaseModel):
    message: str


class EmailRequest(BaseModel):
    email: EmailStr


class TokenVerification(BaseModel):
    token: str


class PasswordResetConfirm(BaseModel):
    token: str
    new_password: str


class RateLimitCheck(BaseModel):
    """Body of the rate limit endpoint."""

    email: Optional[str] = None


class RateLimitStatus(BaseModel):
    allowed: bool
    remaining_attempts: Optional[int] = None
    reset_at: Optional[datetime] = None
    message: Optional[str] = None


# Feature Request Schemas
class FeatureRequestBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str = Field(..., min_length=1, max_length=DESCRIPTION_MAX_LENGTH)


class FeatureRequestCreate(FeatureRequestBase):
    pass


class FeatureRequestUpdate(FeatureRequestBase):
    pass


class FeatureRequestStatusUpdate(BaseModel):
    # Plain string so unknown values reach the service and fail as InvalidStatus
    status: str


class FeatureRequest(BaseModel):
    id: int
    title: str
    description: str
    status: FeatureRequestStatus
    user_id: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FeatureRequestWithVotes(FeatureRequest):
    author_name: Optional[str] = None
    vote_count: int
    has_voted: bool = False


# Vote Schemas
class VoteToggleResult(BaseModel):
    action: Literal["added", "removed"]
    vote_count: int


# Activity Schemas
class ActivityItem(BaseModel):
    id: int
    type: ActivityType
    feature_request_id: Optional[int] = None
    # Live title, or the frozen snapshot for deleted requests
    feature_request_title: Optional[str] = None
    created_at: datetime


class ActivityList(BaseModel):
    activities: List[ActivityItem]
