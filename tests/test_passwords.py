"""Tests for the password policy engine."""

from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import BadRequestError
from app.core.passwords import (COMMON_PATTERNS, MIN_LENGTH, SYMBOLS,
                                generate_temporary_password, hash_password,
                                is_password_expired, password_errors,
                                validate_password, verify_password)


def test_strong_password_accepted():
    validate_password("Str0ng!Pass")
    assert password_errors("Gr8&Quiet") == []


@pytest.mark.parametrize(
    "password, fragment",
    [
        ("Sh0rt!", f"at least {MIN_LENGTH} characters"),
        ("NOLOWER1!", "lowercase"),
        ("noupper1!", "uppercase"),
        ("NoDigits!!", "digit"),
        ("NoSymbol12", "special character"),
    ],
)
def test_each_rule_reported(password: str, fragment: str):
    errors = password_errors(password)
    assert any(fragment in e for e in errors)


def test_all_violations_joined_in_one_error():
    with pytest.raises(BadRequestError) as exc_info:
        validate_password("abc")
    detail = exc_info.value.detail
    assert "at least 8 characters" in detail
    assert "uppercase" in detail
    assert "digit" in detail
    assert "special character" in detail
    assert exc_info.value.status_code == 400


@pytest.mark.parametrize("pattern", COMMON_PATTERNS)
def test_common_patterns_rejected_case_insensitively(pattern: str):
    candidate = f"Xy9@{pattern.upper()}"
    assert any("common patterns" in e for e in password_errors(candidate))


def test_symbol_outside_allowed_set_does_not_count():
    errors = password_errors("Abcdefg1#")
    assert any(SYMBOLS in e for e in errors)


def test_hash_password_validates_first():
    with pytest.raises(BadRequestError):
        hash_password("weak")


def test_hash_and_verify():
    digest = hash_password("Str0ng!Pass")
    assert digest != "Str0ng!Pass"
    assert verify_password("Str0ng!Pass", digest) is True
    assert verify_password("Wr0ng!Pass", digest) is False


def test_verify_against_malformed_hash_is_false():
    assert verify_password("Str0ng!Pass", "not-a-bcrypt-hash") is False


def test_password_never_set_never_expires():
    assert is_password_expired(None) is False


def test_password_expiry_window():
    now = datetime(2026, 6, 1, tzinfo=timezone.utc)
    assert is_password_expired(now - timedelta(days=89), now=now) is False
    assert is_password_expired(now - timedelta(days=91), now=now) is True


def test_naive_change_time_treated_as_utc():
    now = datetime(2026, 6, 1, tzinfo=timezone.utc)
    naive = datetime(2026, 1, 1)
    assert is_password_expired(naive, now=now) is True


def test_temporary_passwords_always_satisfy_policy():
    for _ in range(200):
        candidate = generate_temporary_password()
        assert len(candidate) == 12
        assert password_errors(candidate) == []


def test_temporary_password_length_has_a_floor():
    assert len(generate_temporary_password(4)) == MIN_LENGTH
