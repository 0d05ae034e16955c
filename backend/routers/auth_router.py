"""Authentication router endpoints."""

from fastapi import APIRouter, Depends, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

import authentication.auth as auth
import models.schemas as schemas
import repositories.db_models as db_models
from helpers.rate_limiter import get_login_rate_limiter
from helpers.request_utils import get_client_ip
from repositories.database import get_db
from services.auth_service import AuthService
from services.rate_limit_service import LoginRateLimiter

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register", response_model=schemas.User, status_code=status.HTTP_201_CREATED
)
def register(
    user: schemas.UserCreate, db: Session = Depends(get_db)
) -> db_models.User:
    """
    Register a new user.

    The account must verify its email before it can log in.
    """
    return AuthService.register(db, user)


@router.post("/login", response_model=schemas.Token)
def login(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
    rate_limiter: LoginRateLimiter = Depends(get_login_rate_limiter),
) -> schemas.Token:
    """
    Login with email (``username`` field) and password.

    Limited to a fixed number of attempts per email per window.
    Domain exceptions are caught by centralized exception handlers.
    """
    return AuthService.login(
        db,
        rate_limiter,
        form_data.username,
        form_data.password,
        client_ip=get_client_ip(request),
    )


@router.post("/rate-limit", response_model=schemas.RateLimitStatus)
def rate_limit(
    request: Request,
    body: schemas.RateLimitCheck,
    rate_limiter: LoginRateLimiter = Depends(get_login_rate_limiter),
) -> schemas.RateLimitStatus:
    """Count a login attempt for an email and report the limiter's decision."""
    return AuthService.check_attempt(
        rate_limiter, body.email, client_ip=get_client_ip(request)
    )


@router.get("/verify-email", response_model=schemas.MessageResponse)
def verify_email(token: str, db: Session = Depends(get_db)) -> schemas.MessageResponse:
    AuthService.verify_email(db, token)
    return schemas.MessageResponse(message="Email verified. You can now log in.")


@router.post("/resend-verification", response_model=schemas.MessageResponse)
def resend_verification(
    body: schemas.EmailRequest, db: Session = Depends(get_db)
) -> schemas.MessageResponse:
    AuthService.resend_verification(db, body.email)
    return schemas.MessageResponse(message="Verification email sent successfully")


@router.post("/forgot-password", response_model=schemas.MessageResponse)
def forgot_password(
    body: schemas.EmailRequest, db: Session = Depends(get_db)
) -> schemas.MessageResponse:
    """Send a reset link. The response never reveals whether the email exists."""
    return schemas.MessageResponse(message=AuthService.forgot_password(db, body.email))


@router.post("/verify-reset-token", response_model=schemas.MessageResponse)
def verify_reset_token(
    body: schemas.TokenVerification, db: Session = Depends(get_db)
) -> schemas.MessageResponse:
    AuthService.verify_reset_token(db, body.token)
    return schemas.MessageResponse(message="Token is valid")


@router.post("/reset-password", response_model=schemas.MessageResponse)
def reset_password(
    body: schemas.PasswordResetConfirm, db: Session = Depends(get_db)
) -> schemas.MessageResponse:
    AuthService.reset_password(db, body.token, body.new_password)
    return schemas.MessageResponse(message="Password reset successful")


@router.get("/me", response_model=schemas.User)
async def read_users_me(
    current_user: db_models.User = Depends(auth.get_current_user),
) -> db_models.User:
    """Get current user."""
    return current_user
