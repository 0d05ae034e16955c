import time
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.exc import OperationalError
from starlette.middleware.base import BaseHTTPMiddleware

from core.correlation import (
    accept_correlation_id,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from core.logging_config import configure_logging
from core.sentry_config import init_sentry
from helpers.rate_limiter import create_login_rate_limiter
from models.config import settings
from models.exceptions import (
    AlreadyExistsException,
    AuthenticationException,
    BusinessRuleException,
    ConflictException,
    DomainException,
    EmailDeliveryException,
    InfrastructureException,
    NotFoundException,
    PermissionDeniedException,
    RateLimitExceededException,
    TransactionFailureException,
    ValidationException,
)
from repositories.database import Base, engine
from routers import (
    admin_router,
    auth_router,
    feature_requests_router,
    users_router,
)

init_sentry(settings.SENTRY_DSN, settings.ENVIRONMENT, settings.SENTRY_RELEASE)

configure_logging(settings.ENVIRONMENT)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    - Optionally create tables when `AUTO_CREATE_DB` is enabled (development).
    - Drop expired login windows on shutdown.
    """
    if settings.AUTO_CREATE_DB:
        logger.info(
            "AUTO_CREATE_DB enabled; creating database tables via SQLAlchemy create_all()"
        )
        Base.metadata.create_all(bind=engine)
    else:
        logger.info("AUTO_CREATE_DB disabled; skipping automatic create_all()")

    try:
        yield
    finally:
        purged = app.state.login_rate_limiter.purge_expired()
        logger.info(f"Shutdown complete ({purged} expired login windows dropped)")


app = FastAPI(title="Feature Board API", lifespan=lifespan)

# In-process login limiter shared by all requests
app.state.login_rate_limiter = create_login_rate_limiter()


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Inject correlation ID into request context and Sentry."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        correlation_id = accept_correlation_id(request.headers.get("X-Correlation-ID"))
        set_correlation_id(correlation_id)
        sentry_sdk.set_tag("correlation_id", correlation_id)

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log requests and warn on slow ones."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        logger.info(
            f"{request.method} {request.url.path} "
            f"status={response.status_code} duration={duration:.3f}s"
        )
        if duration > settings.SLOW_REQUEST_THRESHOLD:
            logger.warning(
                f"Slow request: {request.method} {request.url.path} "
                f"took {duration:.2f}s (threshold: {settings.SLOW_REQUEST_THRESHOLD}s)"
            )

        response.headers["X-Response-Time"] = f"{duration:.3f}s"
        return response


# Middleware runs in reverse order of registration
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)

cors_origins = ["*"] if settings.ENVIRONMENT == "development" else settings.CORS_ORIGINS
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=settings.ENVIRONMENT != "development",
    allow_methods=["*"],
    allow_headers=["*"],
)


# Status per exception family; the most specific class in the MRO wins
_DOMAIN_STATUS: dict[type[DomainException], int] = {
    NotFoundException: status.HTTP_404_NOT_FOUND,
    AlreadyExistsException: status.HTTP_409_CONFLICT,
    ConflictException: status.HTTP_409_CONFLICT,
    ValidationException: status.HTTP_422_UNPROCESSABLE_ENTITY,
    PermissionDeniedException: status.HTTP_403_FORBIDDEN,
    AuthenticationException: status.HTTP_401_UNAUTHORIZED,
    BusinessRuleException: status.HTTP_400_BAD_REQUEST,
    RateLimitExceededException: status.HTTP_429_TOO_MANY_REQUESTS,
    TransactionFailureException: status.HTTP_500_INTERNAL_SERVER_ERROR,
    InfrastructureException: status.HTTP_503_SERVICE_UNAVAILABLE,
    EmailDeliveryException: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

# Failures nobody asked for: logged at error level
_UNEXPECTED = (
    TransactionFailureException,
    InfrastructureException,
    EmailDeliveryException,
)

# Expected outcomes that still go to Sentry
_REPORTED = (AuthenticationException,)


def _status_for(exc: DomainException) -> int:
    for klass in type(exc).__mro__:
        if klass in _DOMAIN_STATUS:
            return _DOMAIN_STATUS[klass]
    return status.HTTP_400_BAD_REQUEST


def _error_body(detail: str, error_code: str, correlation_id: str) -> dict:
    return {
        "detail": detail,
        "error_code": error_code,
        "correlation_id": correlation_id,
    }


@app.exception_handler(DomainException)
async def domain_exception_handler(
    request: Request, exc: DomainException
) -> JSONResponse:
    """Translate any domain exception into its HTTP status and error body."""
    status_code = _status_for(exc)
    exception_type = exc.__class__.__name__
    sentry_sdk.set_tag("correlation_id", exc.correlation_id)
    sentry_sdk.set_tag("exception_type", exception_type)

    if isinstance(exc, _UNEXPECTED):
        sentry_sdk.capture_exception(exc)
        logger.error(
            f"{exception_type}: {exc.message}",
            correlation_id=exc.correlation_id,
            path=str(request.url.path),
        )
    else:
        if isinstance(exc, _REPORTED) or type(exc) is DomainException:
            sentry_sdk.capture_exception(exc)
        logger.warning(
            f"{exception_type} ({status_code}): {exc.message}",
            correlation_id=exc.correlation_id,
            path=str(request.url.path),
        )

    headers = {}
    if isinstance(exc, AuthenticationException):
        headers["WWW-Authenticate"] = "Bearer"
    if isinstance(exc, RateLimitExceededException) and exc.retry_after:
        headers["Retry-After"] = str(exc.retry_after)

    return JSONResponse(
        status_code=status_code,
        content=_error_body(exc.message, exc.error_code, exc.correlation_id),
        headers=headers or None,
    )


@app.exception_handler(OperationalError)
async def operational_error_handler(
    request: Request, exc: OperationalError
) -> JSONResponse:
    """Database unreachable or locked."""
    correlation_id = get_correlation_id() or generate_correlation_id()
    sentry_sdk.capture_exception(exc)
    logger.error(
        f"Database unavailable: {exc!r}",
        correlation_id=correlation_id,
        path=str(request.url.path),
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=_error_body(
            "Database temporarily unavailable",
            InfrastructureException.error_code,
            correlation_id,
        ),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: generic 500 with the traceback in the logs and Sentry."""
    correlation_id = get_correlation_id() or generate_correlation_id()

    sentry_sdk.set_tag("correlation_id", correlation_id)
    sentry_sdk.capture_exception(exc)

    # repr() keeps braces in the message away from loguru's formatter
    logger.exception(
        f"Unhandled exception: {exc!r}",
        correlation_id=correlation_id,
        path=str(request.url.path),
        method=request.method,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("Internal server error", "InternalError", correlation_id),
    )


app.include_router(auth_router.router, prefix="/api")
app.include_router(feature_requests_router.router, prefix="/api")
app.include_router(users_router.router, prefix="/api")
app.include_router(admin_router.router, prefix="/api")


@app.get("/")
def root() -> dict:
    return {"message": "Welcome to Feature Board API"}


@app.get("/api/health")
def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "healthy"}
