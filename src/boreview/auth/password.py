"""Argon2id password hashing plus the admin and visitor password rules."""

from __future__ import annotations

from collections.abc import Callable

import argon2

_hasher = argon2.PasswordHasher(
    time_cost=2,
    memory_cost=65536,  # KiB
    parallelism=1,
    hash_len=32,
    salt_len=16,
    type=argon2.Type.ID,
)

ADMIN_PASSWORD_MIN_LENGTH = 8
ADMIN_PASSWORD_MAX_LENGTH = 128
VISITOR_PASSWORD_MIN_LENGTH = 6

# Checked in order; the first failing rule's message is reported.
ADMIN_PASSWORD_RULES: list[tuple[Callable[[str], bool], str]] = [
    (lambda p: bool(p.strip()), "Mật khẩu không được để trống"),
    (lambda p: len(p) >= ADMIN_PASSWORD_MIN_LENGTH, f"Mật khẩu phải có ít nhất {ADMIN_PASSWORD_MIN_LENGTH} ký tự"),
    (
        lambda p: len(p) <= ADMIN_PASSWORD_MAX_LENGTH,
        f"Mật khẩu không được vượt quá {ADMIN_PASSWORD_MAX_LENGTH} ký tự",
    ),
    (lambda p: any(c.isupper() for c in p), "Mật khẩu phải có ít nhất một chữ hoa"),
    (lambda p: any(c.islower() for c in p), "Mật khẩu phải có ít nhất một chữ thường"),
    (lambda p: any(c.isdigit() for c in p), "Mật khẩu phải có ít nhất một chữ số"),
]


class PasswordStrengthError(ValueError):
    pass


def hash_password(password: str) -> str:
    return _hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """True on match; mismatches and malformed hashes are both False."""
    try:
        return _hasher.verify(password_hash, password)
    except (argon2.exceptions.VerifyMismatchError, argon2.exceptions.InvalidHashError):
        return False


def needs_rehash(password_hash: str) -> bool:
    """True when the hash was made with older hasher parameters."""
    return _hasher.check_needs_rehash(password_hash)


def validate_password_strength(password: str) -> None:
    """Admin rules: 8 to 128 characters with upper, lower and a digit."""
    for rule, message in ADMIN_PASSWORD_RULES:
        if not rule(password):
            raise PasswordStrengthError(message)


def validate_visitor_password(password: str) -> None:
    if len(password) < VISITOR_PASSWORD_MIN_LENGTH:
        msg = f"Mật khẩu phải có ít nhất {VISITOR_PASSWORD_MIN_LENGTH} ký tự"
        raise PasswordStrengthError(msg)
