"""
Rate Limit Service - fixed-window limiter for login attempts.

Each identifier (email, else client IP, else "unknown") gets a window record
``{count, reset_at}``. The limiter is a plain object created once by the
application (``app.state.login_rate_limiter``); tests build their own
instances with a fake clock.

Note: state lives in process memory. Several workers each keep their own
counts.
"""

import math
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterator, Optional

from loguru import logger

from helpers.time_utils import format_clock_utc, utc_now
from models.exceptions import RateLimitExceededException

UNKNOWN_IDENTIFIER = "unknown"


@dataclass
class RateLimitDecision:
    """Outcome of a single rate limit check."""

    allowed: bool
    reset_at: datetime
    remaining_attempts: Optional[int] = None
    message: Optional[str] = None

    def retry_after_seconds(self, now: datetime) -> int:
        return max(0, math.ceil((self.reset_at - now).total_seconds()))


@dataclass
class _Window:
    count: int
    reset_at: datetime


@dataclass
class _KeyLock:
    lock: threading.Lock
    users: int = 0


def resolve_identifier(email: Optional[str], client_ip: Optional[str]) -> str:
    """
    Pick the rate limit key for an attempt.

    Args:
        email: Submitted or authenticated email, if any
        client_ip: Caller's network address, if known

    Returns:
        Normalized email, else the IP, else the shared "unknown" bucket
    """
    if email and email.strip():
        return email.strip().lower()
    if client_ip:
        return client_ip
    return UNKNOWN_IDENTIFIER


class LoginRateLimiter:
    """
    In-process fixed-window rate limiter with one lock per identifier.

    A per-identifier lock exists only while some caller is using it, and
    expired windows are swept at most once per ``window`` from ``check``,
    so memory tracks the identifiers seen in the last window.
    """

    def __init__(
        self,
        max_attempts: int = 5,
        window: timedelta = timedelta(minutes=15),
        clock: Callable[[], datetime] = utc_now,
    ):
        self.max_attempts = max_attempts
        self.window = window
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._locks: Dict[str, _KeyLock] = {}
        self._guard = threading.Lock()
        self._next_purge_at = clock() + window

    @contextmanager
    def _locked(self, identifier: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(identifier)
            if entry is None:
                entry = _KeyLock(lock=threading.Lock())
                self._locks[identifier] = entry
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[identifier]

    def _purge_due(self, now: datetime) -> bool:
        with self._guard:
            if now < self._next_purge_at:
                return False
            self._next_purge_at = now + self.window
            return True

    def check(self, identifier: str) -> RateLimitDecision:
        """
        Count an attempt and decide whether it may proceed.

        Args:
            identifier: Rate limit key (see ``resolve_identifier``)

        Returns:
            RateLimitDecision; denied decisions carry no remaining_attempts
            and a message naming the retry time
        """
        if self._purge_due(self._clock()):
            self.purge_expired()

        with self._locked(identifier):
            now = self._clock()
            window = self._windows.get(identifier)

            if window is None or now >= window.reset_at:
                window = _Window(count=1, reset_at=now + self.window)
                self._windows[identifier] = window
                return RateLimitDecision(
                    allowed=True,
                    reset_at=window.reset_at,
                    remaining_attempts=self.max_attempts - 1,
                )

            if window.count < self.max_attempts:
                window.count += 1
                return RateLimitDecision(
                    allowed=True,
                    reset_at=window.reset_at,
                    remaining_attempts=self.max_attempts - window.count,
                )

            logger.warning(
                "Login rate limit exceeded",
                identifier=identifier,
                reset_at=window.reset_at.isoformat(),
            )
            return RateLimitDecision(
                allowed=False,
                reset_at=window.reset_at,
                message=(
                    "Too many login attempts. Please try again after "
                    f"{format_clock_utc(window.reset_at)}."
                ),
            )

    def reset(self, identifier: str) -> None:
        """Forget an identifier's window (called after a successful login)."""
        with self._locked(identifier):
            self._windows.pop(identifier, None)

    def enforce(self, identifier: str) -> RateLimitDecision:
        """
        Like ``check``, but raise when the attempt is denied.

        Raises:
            RateLimitExceededException: If the identifier is over its limit
        """
        decision = self.check(identifier)
        if not decision.allowed:
            raise RateLimitExceededException(
                message=decision.message or "Too many login attempts.",
                retry_after=decision.retry_after_seconds(self._clock()),
                reset_at=decision.reset_at,
            )
        return decision

    def purge_expired(self) -> int:
        """
        Drop windows that have already ended.

        Each key is re-checked under its own lock, so a window that a
        concurrent ``check`` has just renewed is kept.

        Returns:
            Number of identifiers removed
        """
        now = self._clock()
        with self._guard:
            candidates = [
                key
                for key, window in list(self._windows.items())
                if now >= window.reset_at
            ]

        purged = 0
        for key in candidates:
            with self._locked(key):
                window = self._windows.get(key)
                if window is not None and now >= window.reset_at:
                    del self._windows[key]
                    purged += 1
        if purged:
            logger.debug(f"Purged {purged} expired login rate limit windows")
        return purged
