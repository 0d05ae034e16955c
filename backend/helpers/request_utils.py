"""Client address lookup for login logging."""

from typing import Optional

from fastapi import Request

from models.config import settings

# Checked in order when the app runs behind a trusted proxy
_PROXY_HEADERS = ("X-Real-IP", "X-Forwarded-For")


def get_client_ip(request: Request) -> Optional[str]:
    """
    Return the address a login attempt came from.

    Proxy headers are only read when ``TRUST_PROXY_HEADERS`` is enabled,
    otherwise any client could write its own address into the audit log.
    For ``X-Forwarded-For`` the left-most entry is the original client.

    Args:
        request: FastAPI request object

    Returns:
        Client IP address, or None when the transport gives none
    """
    if settings.TRUST_PROXY_HEADERS:
        for header in _PROXY_HEADERS:
            value = request.headers.get(header, "").split(",")[0].strip()
            if value:
                return value

    return request.client.host if request.client else None
