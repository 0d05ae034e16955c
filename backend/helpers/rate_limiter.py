"""
Login rate limiter wiring.

The limiter instance lives on ``app.state`` and is created by
``create_login_rate_limiter`` at startup. Routers reach it through the
``get_login_rate_limiter`` dependency, which tests can override.
"""

from datetime import timedelta

from fastapi import Request

from models.config import settings
from services.rate_limit_service import LoginRateLimiter


def create_login_rate_limiter() -> LoginRateLimiter:
    """Build a limiter from settings."""
    return LoginRateLimiter(
        max_attempts=settings.LOGIN_RATE_LIMIT_MAX_ATTEMPTS,
        window=timedelta(minutes=settings.LOGIN_RATE_LIMIT_WINDOW_MINUTES),
    )


def get_login_rate_limiter(request: Request) -> LoginRateLimiter:
    """FastAPI dependency returning the application's login limiter."""
    return request.app.state.login_rate_limiter
