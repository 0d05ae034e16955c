"""Tests for password validation helper."""

import pytest

from helpers.password_validation import ensure_password_complexity, password_problems
from models.exceptions import ValidationException


class TestPasswordProblems:
    def test_valid_password(self):
        assert password_problems("Feature1!") == []

    def test_too_short(self):
        problems = password_problems("Ab1!")
        assert problems == ["Password must be at least 8 characters long"]

    @pytest.mark.parametrize(
        "password, fragment",
        [
            ("lowercase1!", "uppercase letter"),
            ("UPPERCASE1!", "lowercase letter"),
            ("NoDigits!!", "digit"),
            ("NoSpecial12", "special character"),
        ],
    )
    def test_each_missing_class_reported(self, password, fragment):
        problems = password_problems(password)
        assert len(problems) == 1
        assert fragment in problems[0]

    def test_space_counts_as_special(self):
        assert password_problems("Has Space1") == []

    def test_all_failures_collected(self):
        assert len(password_problems("")) == 5


class TestEnsurePasswordComplexity:
    def test_passes_silently(self):
        ensure_password_complexity("Feature1!")

    def test_raises_with_joined_messages(self):
        with pytest.raises(ValidationException) as exc_info:
            ensure_password_complexity("short")
        message = exc_info.value.message
        assert "at least 8 characters" in message
        assert "; " in message
