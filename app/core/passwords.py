"""
Password policy engine — complexity rules, bcrypt hashing, expiry and
temporary-password generation.

Validation always runs before hashing, so a weak password can never be
persisted through :func:`hash_password`.
"""

from __future__ import annotations

import re
import secrets
import string
from datetime import datetime, timedelta, timezone

from passlib.context import CryptContext

from app.core.config import settings
from app.core.exceptions import BadRequestError
from app.db.base import ensure_utc

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

MIN_LENGTH = 8
SYMBOLS = "@$!%*?&"

COMMON_PATTERNS = (
    "123456",
    "654321",
    "qwerty",
    "asdfgh",
    "password",
    "admin",
    "user",
    "111111",
    "000000",
    "abc123",
    "password123",
    "admin123",
    "123123",
)

_LOWER_RE = re.compile(r"[a-z]")
_UPPER_RE = re.compile(r"[A-Z]")
_DIGIT_RE = re.compile(r"\d")
_SYMBOL_RE = re.compile(f"[{re.escape(SYMBOLS)}]")


def has_common_pattern(password: str) -> bool:
    lowered = password.lower()
    return any(pattern in lowered for pattern in COMMON_PATTERNS)


def password_errors(password: str) -> list[str]:
    """Return every rule the password breaks (empty list when it is acceptable)."""
    errors: list[str] = []
    if len(password) < MIN_LENGTH:
        errors.append(f"Password must be at least {MIN_LENGTH} characters long")
    if not _LOWER_RE.search(password):
        errors.append("Password must contain at least one lowercase letter")
    if not _UPPER_RE.search(password):
        errors.append("Password must contain at least one uppercase letter")
    if not _DIGIT_RE.search(password):
        errors.append("Password must contain at least one digit")
    if not _SYMBOL_RE.search(password):
        errors.append(f"Password must contain at least one special character ({SYMBOLS})")
    if has_common_pattern(password):
        errors.append(
            "Password must not contain common patterns (123456, qwerty, password, etc.)"
        )
    return errors


def validate_password(password: str) -> None:
    """Raise :class:`BadRequestError` listing every violated rule."""
    errors = password_errors(password)
    if errors:
        raise BadRequestError(". ".join(errors))


def hash_password(password: str) -> str:
    validate_password(password)
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return pwd_context.verify(plain, hashed)
    except ValueError:
        # Malformed or foreign hash format stored for this user
        return False


def is_password_expired(changed_at: datetime | None, now: datetime | None = None) -> bool:
    if changed_at is None:
        return False
    now = now or datetime.now(timezone.utc)
    return now - ensure_utc(changed_at) > timedelta(days=settings.PASSWORD_MAX_AGE_DAYS)


def generate_temporary_password(length: int = 12) -> str:
    """Random password that satisfies :func:`validate_password` by construction."""
    length = max(length, MIN_LENGTH)
    alphabet = string.ascii_letters + string.digits + SYMBOLS
    rng = secrets.SystemRandom()
    while True:
        chars = [
            secrets.choice(string.ascii_uppercase),
            secrets.choice(string.ascii_lowercase),
            secrets.choice(string.digits),
            secrets.choice(SYMBOLS),
        ]
        chars.extend(secrets.choice(alphabet) for _ in range(length - len(chars)))
        rng.shuffle(chars)
        candidate = "".join(chars)
        # A random fill can spell a banned substring; draw again when it does
        if not has_common_pattern(candidate):
            return candidate
