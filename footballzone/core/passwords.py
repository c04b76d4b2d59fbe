"""Password hashing, verification and strength rules (bcrypt)."""

import re
from typing import List, NamedTuple

import bcrypt

from footballzone.core.config import Settings
from footballzone.core.exceptions import HashingError, VerificationError

SPECIAL_CHARACTERS = '!@#$%^&*(),.?":{}|<>'

# bcrypt only consumes the first 72 bytes of a secret
BCRYPT_MAX_BYTES = 72

MIN_LENGTH = 8
MAX_LENGTH = 128

_REPEATED_RUN = re.compile(r"(.)\1{7,}")
_SEQUENCES = ("0123456789", "abcdefghijklmnopqrstuvwxyz")
COMMON_PASSWORDS = frozenset({
    "password", "password1", "123456", "12345678", "123456789", "qwerty",
    "qwerty123", "abc123", "admin", "admin123", "football", "guest",
    "letmein", "welcome", "iloveyou", "111111", "000000", "futbol",
})


class StrengthResult(NamedTuple):
    valid: bool
    errors: List[str]


def _has_sequential_run(password: str, run: int = 3) -> bool:
    lowered = password.lower()
    for i in range(len(lowered) - run + 1):
        chunk = lowered[i:i + run]
        if any(chunk in seq for seq in _SEQUENCES):
            return True
    return False


def _is_weak_pattern(password: str) -> bool:
    if _REPEATED_RUN.search(password):
        return True
    if _has_sequential_run(password):
        return True
    return password.lower() in COMMON_PASSWORDS


def validate_strength(password: str) -> StrengthResult:
    """Check a password against every strength rule.

    Returns all violated rules, not only the first one.
    """
    errors: List[str] = []

    if len(password) < MIN_LENGTH:
        errors.append(f"Password must be at least {MIN_LENGTH} characters long")
    if len(password) > MAX_LENGTH:
        errors.append(f"Password must not exceed {MAX_LENGTH} characters")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        errors.append("Password must contain at least one number")
    if not any(ch in SPECIAL_CHARACTERS for ch in password):
        errors.append("Password must contain at least one special character")
    if _is_weak_pattern(password):
        errors.append("Password contains common patterns that are not secure")

    return StrengthResult(valid=not errors, errors=errors)


def _secret(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


class PasswordService:
    """bcrypt wrapper using the configured cost factor."""

    def __init__(self, settings: Settings):
        self.rounds = settings.BCRYPT_SALT_ROUNDS

    def hash(self, password: str) -> str:
        """Hash a password using bcrypt."""
        try:
            salt = bcrypt.gensalt(rounds=self.rounds)
            return bcrypt.hashpw(_secret(password), salt).decode("utf-8")
        except (ValueError, TypeError) as e:
            raise HashingError("Password hashing failed") from e

    def verify(self, password: str, hashed_password: str) -> bool:
        """Verify a password against its hash (constant time)."""
        try:
            return bcrypt.checkpw(_secret(password), hashed_password.encode("utf-8"))
        except (ValueError, TypeError) as e:
            raise VerificationError("Password verification failed") from e

    def needs_rehash(self, hashed_password: str) -> bool:
        """True when the hash was made with a different cost factor.

        An unparsable hash also needs rehashing.
        """
        try:
            rounds = int(hashed_password.split("$")[2])
        except (IndexError, ValueError, AttributeError):
            return True
        return rounds != self.rounds

    validate_strength = staticmethod(validate_strength)
