"""
Per-request correlation IDs.

The ID lives in a ``ContextVar`` so log records, Sentry events and domain
exceptions raised anywhere during a request all carry the same value.
"""

import re
import uuid
from contextvars import ContextVar

# Longest client-supplied ID that is kept as-is
MAX_INCOMING_LENGTH = 64

_SAFE_ID = re.compile(r"^[A-Za-z0-9._-]+$")

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def generate_correlation_id() -> str:
    """Return a fresh 8-character hex ID, e.g. ``"9f1c02ab"``."""
    return uuid.uuid4().hex[:8]


def accept_correlation_id(incoming: str | None) -> str:
    """
    Choose the ID for a request from the ``X-Correlation-ID`` header.

    A client-supplied ID is reused only when it is short and made of
    ``[A-Za-z0-9._-]``, so header values never inject text into log lines.
    Anything else is replaced by a generated ID.

    Args:
        incoming: Raw header value, or None when absent

    Returns:
        The correlation ID to bind for this request
    """
    if incoming and len(incoming) <= MAX_INCOMING_LENGTH and _SAFE_ID.match(incoming):
        return incoming
    return generate_correlation_id()


def get_correlation_id() -> str:
    """Return the ID bound to the current context ("" outside a request)."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    correlation_id_var.set(correlation_id)
