"""Tests for the fixed-window login rate limiter."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from models.exceptions import RateLimitExceededException
from services.rate_limit_service import (
    UNKNOWN_IDENTIFIER,
    LoginRateLimiter,
    resolve_identifier,
)

START = datetime(2025, 3, 1, 14, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock) -> LoginRateLimiter:
    return LoginRateLimiter(
        max_attempts=5, window=timedelta(minutes=15), clock=clock
    )


class TestCheck:
    """Counting attempts within a window."""

    def test_five_attempts_allowed_then_denied(self, limiter):
        remaining = [limiter.check("a@example.com").remaining_attempts for _ in range(5)]
        assert remaining == [4, 3, 2, 1, 0]

        denied = limiter.check("a@example.com")
        assert denied.allowed is False
        assert denied.remaining_attempts is None
        assert denied.reset_at == START + timedelta(minutes=15)
        assert denied.message == (
            "Too many login attempts. Please try again after 14:15:00 UTC."
        )

    def test_denied_attempts_do_not_extend_window(self, limiter, clock):
        for _ in range(7):
            limiter.check("a@example.com")
        clock.advance(minutes=15)

        decision = limiter.check("a@example.com")
        assert decision.allowed is True
        assert decision.remaining_attempts == 4

    def test_window_still_closed_just_before_reset(self, limiter, clock):
        for _ in range(5):
            limiter.check("a@example.com")
        clock.advance(minutes=14, seconds=59)
        assert limiter.check("a@example.com").allowed is False

    def test_window_starts_at_first_attempt(self, limiter, clock):
        limiter.check("a@example.com")
        clock.advance(minutes=10)
        decision = limiter.check("a@example.com")
        assert decision.reset_at == START + timedelta(minutes=15)

    def test_identifiers_are_independent(self, limiter):
        for _ in range(5):
            limiter.check("a@example.com")
        assert limiter.check("a@example.com").allowed is False
        assert limiter.check("b@example.com").remaining_attempts == 4


class TestReset:
    def test_reset_clears_window(self, limiter):
        for _ in range(5):
            limiter.check("a@example.com")
        limiter.reset("a@example.com")
        assert limiter.check("a@example.com").remaining_attempts == 4

    def test_reset_unknown_identifier_is_noop(self, limiter):
        limiter.reset("nobody@example.com")

    def test_no_state_left_after_reset(self, limiter):
        limiter.check("a@example.com")
        limiter.reset("a@example.com")

        assert limiter._windows == {}
        assert limiter._locks == {}


class TestEnforce:
    def test_raises_with_retry_after(self, limiter, clock):
        for _ in range(5):
            limiter.enforce("a@example.com")
        clock.advance(minutes=5)

        with pytest.raises(RateLimitExceededException) as exc_info:
            limiter.enforce("a@example.com")

        assert exc_info.value.retry_after == 600
        assert exc_info.value.reset_at == START + timedelta(minutes=15)
        assert exc_info.value.error_code == "RateLimited"


class TestPurgeExpired:
    def test_only_expired_windows_removed(self, limiter, clock):
        limiter.check("old@example.com")
        clock.advance(minutes=10)
        limiter.check("new@example.com")
        clock.advance(minutes=6)

        assert limiter.purge_expired() == 1
        # Still inside its window
        assert limiter.check("new@example.com").remaining_attempts == 3

    def test_check_sweeps_expired_windows(self, limiter, clock):
        for n in range(3):
            limiter.check(f"user{n}@example.com")
        clock.advance(minutes=15)

        limiter.check("late@example.com")

        assert set(limiter._windows) == {"late@example.com"}
        assert limiter._locks == {}

    def test_sweep_runs_at_most_once_per_window(self, limiter, clock, monkeypatch):
        sweeps = []
        monkeypatch.setattr(limiter, "purge_expired", lambda: sweeps.append(clock()))

        for minutes in (0, 15, 5, 9, 1):
            clock.advance(minutes=minutes)
            limiter.check("a@example.com")

        assert sweeps == [START + timedelta(minutes=15), START + timedelta(minutes=30)]

    def test_purge_waits_for_key_in_use(self, limiter, clock):
        limiter.check("a@example.com")
        clock.advance(minutes=15)
        purger = threading.Thread(target=limiter.purge_expired)

        with limiter._locked("a@example.com"):
            purger.start()
            purger.join(timeout=0.2)
            assert purger.is_alive()
            assert "a@example.com" in limiter._windows

        purger.join(timeout=5)
        assert not purger.is_alive()
        assert limiter._windows == {}
        assert limiter._locks == {}

    def test_purge_keeps_window_renewed_meanwhile(self, limiter, clock):
        limiter.check("a@example.com")
        clock.advance(minutes=15)
        purger = threading.Thread(target=limiter.purge_expired)

        with limiter._locked("a@example.com"):
            purger.start()
            purger.join(timeout=0.2)
            # Renew the window while the purge is blocked on this key
            limiter._windows["a@example.com"].reset_at = clock() + timedelta(
                minutes=15
            )

        purger.join(timeout=5)
        assert "a@example.com" in limiter._windows


class TestResolveIdentifier:
    def test_email_is_normalized(self):
        assert resolve_identifier("  Alice@Example.COM ", "1.2.3.4") == "alice@example.com"

    def test_falls_back_to_ip(self):
        assert resolve_identifier(None, "1.2.3.4") == "1.2.3.4"
        assert resolve_identifier("   ", "1.2.3.4") == "1.2.3.4"

    def test_unknown_bucket(self):
        assert resolve_identifier(None, None) == UNKNOWN_IDENTIFIER
