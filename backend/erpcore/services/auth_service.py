# Overview: Password hashing and credential checks for login.

"""
Authentication Service with Multi-Tenant Support

Users belong to exactly one tenant. Login identifies the tenant by its code,
then the user by email inside that tenant, so the same email may exist in
several tenants without ambiguity.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from Config.BCRYPT_ROUNDS)
- Minimum 8 characters with upper, lower, digit and special character
- Every failure returns the same "Invalid credentials" message
"""

from __future__ import annotations

import re

import bcrypt

from ..config import Config
from ..errors import UnauthorizedError, ValidationError
from ..models import Tenant, User


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises ValidationError if requirements are not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise ValidationError("Password must be at least 8 characters long")
    if not re.search(r"[A-Z]", password):
        raise ValidationError("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        raise ValidationError("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        raise ValidationError("Password must contain at least one digit")
    if not re.search(r"[!@#$%^&*(),.'\":{}|<>_\-]", password):
        raise ValidationError("Password must contain at least one special character")


def hash_password(password: str, *, rounds: int | None = None) -> str:
    """Validate strength, then hash with bcrypt. Returned as str for storage."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=rounds or Config.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt check; malformed hashes never match."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def authenticate(session, *, tenant_code: str, email: str, password: str) -> User:
    """
    Resolve a user from login credentials.

    Raises UnauthorizedError when the tenant is unknown or inactive, the user
    is unknown or inactive, or the password does not match.
    """
    if not tenant_code or not email or not password:
        raise UnauthorizedError("Invalid credentials")

    tenant = session.query(Tenant).filter_by(code=tenant_code.strip().upper()).first()
    if tenant is None or not tenant.is_active:
        raise UnauthorizedError("Invalid credentials")

    user = session.query(User).filter(
        User.tenant_id == tenant.id,
        User.email == email.strip().lower(),
    ).first()
    if user is None or not user.is_active:
        raise UnauthorizedError("Invalid credentials")

    if not verify_password(password, user.password_hash):
        raise UnauthorizedError("Invalid credentials")

    return user
