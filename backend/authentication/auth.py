"""
Bearer-token authentication and password hashing.

Access tokens are HS256 JWTs whose ``sub`` is the account email and whose
``typ`` claim is ``"access"``. The SYSTEM user can never be resolved from a
token.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import Depends
from fastapi.security import (
    HTTPAuthorizationCredentials,
    HTTPBearer,
    OAuth2PasswordBearer,
)
import jwt
from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from models.config import settings
from models.exceptions import (
    AuthenticationException,
    InsufficientPermissionsException,
)
from repositories.database import get_db
from repositories.user_repository import UserRepository

ACCESS_TOKEN_TYPE = "access"

bearer_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/login")
optional_bearer_scheme = HTTPBearer(auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode(), hashed_password.encode())
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign an access token.

    Args:
        data: Claims to embed, normally ``{"sub": email}``
        expires_delta: Lifetime, defaults to ``ACCESS_TOKEN_EXPIRE_MINUTES``

    Returns:
        Encoded JWT
    """
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {
        **data,
        "typ": ACCESS_TOKEN_TYPE,
        "exp": datetime.now(timezone.utc) + lifetime,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def authenticate_user(db: Session, email: str, password: str) -> db_models.User | None:
    """
    Return the user if the password matches.

    Accounts without a stored password and the SYSTEM user never
    authenticate.
    """
    user = UserRepository(db).get_by_email(email)
    if not user or user.is_system or not user.hashed_password:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


def resolve_token_user(db: Session, token: str) -> db_models.User | None:
    """
    Map a bearer token to its account.

    Raises:
        jwt.exceptions.InvalidTokenError: Bad signature, expired or malformed
    """
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    if payload.get("typ") != ACCESS_TOKEN_TYPE or payload.get("sub") is None:
        return None

    token_data = schemas.TokenData(email=str(payload["sub"]))
    user = UserRepository(db).get_by_email(str(token_data.email))
    if user is None or user.is_system:
        return None
    return user


async def get_current_user(
    token: str = Depends(bearer_scheme), db: Session = Depends(get_db)
) -> db_models.User:
    try:
        user = resolve_token_user(db, token)
    except jwt.exceptions.InvalidTokenError:
        raise AuthenticationException("Could not validate credentials")

    if user is None:
        raise AuthenticationException("Could not validate credentials")
    return user


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(
        optional_bearer_scheme
    ),
    db: Session = Depends(get_db),
) -> Optional[db_models.User]:
    """
    Resolve the caller when a token is sent, else None.

    An expired token raises so the client knows to log in again; a malformed
    one reads as anonymous.
    """
    if credentials is None:
        return None

    try:
        return resolve_token_user(db, credentials.credentials)
    except jwt.exceptions.ExpiredSignatureError:
        raise AuthenticationException("Session expired. Please log in again.")
    except jwt.exceptions.InvalidTokenError:
        return None


async def get_admin_user(
    current_user: db_models.User = Depends(get_current_user),
) -> db_models.User:
    """
    Raises:
        InsufficientPermissionsException: If the caller is not an admin
    """
    if not current_user.is_admin:
        raise InsufficientPermissionsException("Not enough permissions")
    return current_user
