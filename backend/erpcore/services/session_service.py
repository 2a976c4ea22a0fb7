# Overview: Bearer session tokens; maps a presented token to the caller's user, tenant and role.

"""
Session Token Management Service with Multi-Tenant Support

Tokens are cryptographically secure, hashed in the database, and time-limited.

MULTI-TENANT: Sessions capture tenant_id at creation time. This establishes
the tenant context for every authenticated request; later edits to the user
row never move an existing session to another tenant.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage
- Absolute timeout (SESSION_HOURS) and idle timeout (SESSION_IDLE_MINUTES)
- Revocable on logout, user deactivation or tenant deactivation
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from ..config import Config
from ..models import SessionToken, User
from ..time_utils import utcnow
from .concurrency import unit_of_work


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=Config.SESSION_HOURS)
SESSION_IDLE_TIMEOUT = timedelta(minutes=Config.SESSION_IDLE_MINUTES)


@dataclass
class SessionContext:
    """
    Resolved identity of an authenticated request.

    tenant_id comes from the immutable session record; role is read from the
    user at validation time so a demotion takes effect immediately.
    """
    user: User
    token: SessionToken
    tenant_id: int

    @property
    def user_id(self) -> int:
        return self.user.id

    @property
    def role(self) -> str:
        return self.user.role


def generate_token() -> str:
    """64-character hex string; the plaintext is never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session(
    session,
    user: User,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
    absolute_timeout: timedelta = SESSION_ABSOLUTE_TIMEOUT,
) -> tuple[SessionToken, str]:
    """
    Create a new session token for user, capturing the user's tenant.

    Returns (token_record, plaintext_token). The client receives the
    plaintext token; the database stores only its hash.
    """
    plaintext_token = generate_token()
    now = utcnow()

    record = SessionToken(
        user_id=user.id,
        tenant_id=user.tenant_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + absolute_timeout,
        user_agent=(user_agent or "")[:255] or None,
        ip_address=ip_address,
        is_revoked=False,
    )

    with unit_of_work(session):
        session.add(record)

    return record, plaintext_token


def _revoke(record: SessionToken, reason: str, now) -> None:
    record.is_revoked = True
    record.revoked_at = now
    record.revoked_reason = reason


def validate_session(
    session,
    token: str | None,
    *,
    idle_timeout: timedelta = SESSION_IDLE_TIMEOUT,
) -> SessionContext | None:
    """
    Validate a bearer token and return its SessionContext.

    Returns None if:
    - token is missing, unknown, expired or revoked
    - the idle timeout elapsed (the session is revoked)
    - the user or the tenant has been deactivated (the session is revoked)

    Updates last_used_at on success.
    """
    if not token:
        return None

    now = utcnow()
    record = session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if record is None or record.expires_at < now:
        return None

    user = record.user
    with unit_of_work(session):
        if now - record.last_used_at > idle_timeout:
            _revoke(record, "Idle timeout", now)
            return None
        if user is None or not user.is_active or user.tenant_id != record.tenant_id:
            _revoke(record, "User account deactivated", now)
            return None
        if record.tenant is None or not record.tenant.is_active:
            _revoke(record, "Tenant deactivated", now)
            return None
        record.last_used_at = now

    return SessionContext(user=user, token=record, tenant_id=record.tenant_id)


def revoke_session(session, token: str, reason: str = "User logout") -> bool:
    """Revoke one token. Returns False when it was not found or already revoked."""
    record = session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if record is None:
        return False

    with unit_of_work(session):
        _revoke(record, reason, utcnow())
    return True


def revoke_all_user_sessions(session, user_id: int, reason: str = "Revoke all sessions") -> int:
    """Revoke every active session of a user (deactivation, password reset)."""
    now = utcnow()
    with unit_of_work(session):
        records = session.query(SessionToken).filter_by(user_id=user_id, is_revoked=False).all()
        for record in records:
            _revoke(record, reason, now)
    return len(records)
