# Overview: Service-layer operations for session tokens.

"""
Session Token Management Service

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Absolute timeout of SESSION_TTL_HOURS (config, default 24)
- Revocable on logout, password change and employee removal
- Tracks client IP and user agent
"""

import hashlib
import secrets
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import Employee, SessionToken
from ..time_utils import utcnow


def generate_token() -> str:
    """64-character hex string; the plaintext sent to the client and never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def _ttl() -> timedelta:
    return timedelta(hours=int(current_app.config.get("SESSION_TTL_HOURS", 24)))


def create_session(
    employee_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SessionToken, str]:
    """
    Create a new session for an employee.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.
    """
    employee = db.session.query(Employee).filter_by(id=employee_id, deleted_at=None).first()
    if not employee:
        raise ValueError("Employee not found")

    plaintext_token = generate_token()

    now = utcnow()
    session = SessionToken(
        employee_id=employee.id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _ttl(),
        user_agent=(user_agent or "")[:255] or None,
        ip_address=ip_address,
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def validate_session(token: str) -> Employee | None:
    """
    Resolve a bearer token to its employee.

    Returns None if the token is unknown, expired or revoked, or the
    employee has been deleted. Updates last_used_at on success.
    """
    if not token:
        return None

    now = utcnow()
    session = db.session.query(SessionToken).filter(
        SessionToken.token_hash == hash_token(token),
        SessionToken.revoked_at.is_(None),
    ).first()

    if not session:
        return None

    if session.expires_at < now:
        return None

    employee = session.employee
    if not employee or not employee.is_active:
        session.revoked_at = now
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()
    return employee


def revoke_session(token: str) -> bool:
    """Returns True if session was revoked, False if not found."""
    session = db.session.query(SessionToken).filter(
        SessionToken.token_hash == hash_token(token),
        SessionToken.revoked_at.is_(None),
    ).first()

    if not session:
        return False

    session.revoked_at = utcnow()
    db.session.commit()
    return True



def revoke_employee_sessions(employee_id: int) -> int:
    """Revoke every live session of an employee. Flushes only; returns the count."""
    sessions = db.session.query(SessionToken).filter(
        SessionToken.employee_id == employee_id,
        SessionToken.revoked_at.is_(None),
    ).all()
    now = utcnow()
    for session in sessions:
        session.revoked_at = now
    db.session.flush()
    return len(sessions)
