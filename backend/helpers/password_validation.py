"""
Password rules for registration, password change and reset.

A password needs at least 8 characters and one character from each class
below. Anything that is not an ASCII letter or digit counts as special.
"""

import re

from models.exceptions import ValidationException

MIN_PASSWORD_LENGTH = 8

_CHARACTER_CLASSES = (
    (re.compile(r"[A-Z]"), "an uppercase letter"),
    (re.compile(r"[a-z]"), "a lowercase letter"),
    (re.compile(r"\d"), "a digit"),
    (re.compile(r"[^A-Za-z0-9]"), "a special character"),
)


def password_problems(password: str) -> list[str]:
    """
    List every rule the password breaks.

    Args:
        password: Candidate password

    Returns:
        Human-readable messages, empty when the password is acceptable
    """
    problems = []
    if len(password) < MIN_PASSWORD_LENGTH:
        problems.append(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )
    for pattern, label in _CHARACTER_CLASSES:
        if not pattern.search(password):
            problems.append(f"Password must contain at least {label}")
    return problems


def ensure_password_complexity(password: str) -> None:
    """
    Raises:
        ValidationException: With all broken rules joined in the message
    """
    problems = password_problems(password)
    if problems:
        raise ValidationException("; ".join(problems))
