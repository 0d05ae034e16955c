"""
Sentry SDK setup.

Error reporting is optional: nothing is initialized unless a DSN is
configured. Events are scrubbed of credentials and e-mail addresses before
they leave the process.
"""

import re
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.loguru import LoguruIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.types import Event, Hint

SENSITIVE_FIELDS = {
    "password",
    "current_password",
    "new_password",
    "token",
    "access_token",
    "email",
    "username",
}

_EMAIL = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")

UNSAMPLED_PATHS = {"/health", "/api/health"}


def _scrub_body(data: Any) -> Any:
    """Replace sensitive values in a request body dict."""
    if not isinstance(data, dict):
        return data
    return {
        key: "[Filtered]" if key in SENSITIVE_FIELDS else value
        for key, value in data.items()
    }


def _mask_emails(text: Any) -> Any:
    if isinstance(text, str):
        return _EMAIL.sub("[email]", text)
    return text


def _before_send(event: Event, hint: Hint) -> Event | None:
    """
    Strip PII from an event before it is sent.

    Only the user ID is kept. Cookies, the Authorization header and
    credential fields of the request body are removed, and e-mail addresses
    inside messages and exception values are masked.
    """
    user = event.get("user")
    if user:
        user.pop("email", None)
        user.pop("username", None)
        if "ip_address" in user:
            user["ip_address"] = "{{auto}}"

    request = event.get("request")
    if request and isinstance(request, dict):
        request.pop("cookies", None)
        headers = request.get("headers")
        if isinstance(headers, dict) and "Authorization" in headers:
            headers["Authorization"] = "[Filtered]"
        if "data" in request:
            request["data"] = _scrub_body(request["data"])

    logentry = event.get("logentry")
    if isinstance(logentry, dict):
        for key in ("message", "formatted"):
            if key in logentry:
                logentry[key] = _mask_emails(logentry[key])
    if "message" in event:
        event["message"] = _mask_emails(event["message"])

    for exc in (event.get("exception") or {}).get("values") or []:
        exc["value"] = _mask_emails(exc.get("value"))

    return event


def _traces_sampler(sampling_context: dict[str, Any]) -> float:
    """
    Pick a trace sample rate for a request.

    Auth and admin endpoints are sampled more heavily since they carry the
    login rate limiting and account deletion paths.
    """
    if sampling_context.get("parent_sampled") is True:
        return 1.0

    path = sampling_context.get("asgi_scope", {}).get("path", "")
    if path in UNSAMPLED_PATHS:
        return 0.0

    if path.startswith("/api/admin") or path.startswith("/api/auth"):
        return 0.5

    return 0.2


def init_sentry(dsn: str | None, environment: str, release: str = "unknown") -> bool:
    """
    Initialize Sentry if a DSN is configured.

    Call this before creating the FastAPI app instance.

    Args:
        dsn: Sentry DSN, or None/empty to leave Sentry disabled.
        environment: Deployment environment name.
        release: Release identifier.

    Returns:
        True if Sentry was initialized.
    """
    if not dsn:
        return False

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=release,
        send_default_pii=False,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            LoguruIntegration(),
        ],
        traces_sampler=_traces_sampler,
        sample_rate=1.0,
        before_send=_before_send,
        attach_stacktrace=True,
        max_breadcrumbs=50,
        ignore_errors=[KeyboardInterrupt, SystemExit],
    )
    return True
