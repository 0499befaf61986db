"""Session tokens and the authorization gate.

Tokens are opaque bearer strings stored in the ``sessions`` table. Issuing
them (login, registration) is outside this API; ``scripts/add_user.py``
provisions one for a user.
"""
from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone

from fastapi import Request

from medikeep.core.config import get_settings
from medikeep.core.errors import Unauthorized
from medikeep.db.models import User, UserSession
from medikeep.db.session import get_session
from medikeep.domain.records import Owner

AUTH_HEADER = "authorization"
BEARER_PREFIX = "bearer "


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they were written as UTC.
    return value.astimezone(timezone.utc) if value.tzinfo else value.replace(tzinfo=timezone.utc)


def issue_session(user_id: str) -> str:
    """Create a new session token for ``user_id`` and persist it."""
    token = secrets.token_urlsafe(32)
    settings = get_settings()
    ttl = max(60, settings.session_ttl_seconds)
    expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl)

    with get_session() as session:
        session.add(UserSession(token=token, user_id=user_id, expires_at=expires_at))
        session.commit()
    return token


def owner_for_token(token: str | None) -> Owner | None:
    """Return the Owner behind a live session token, if any."""
    if not token:
        return None
    now = datetime.now(timezone.utc)
    with get_session() as session:
        db_session = session.get(UserSession, token)
        if not db_session:
            return None
        if db_session.expires_at and _as_utc(db_session.expires_at) < now:
            session.delete(db_session)
            session.commit()
            return None
        user = session.get(User, db_session.user_id)
        if not user:
            return None
        return Owner(id=user.id, email=user.email or "", name=user.name or "")


def bearer_token(request: Request) -> str | None:
    header = request.headers.get(AUTH_HEADER) or ""
    if header.lower().startswith(BEARER_PREFIX):
        return header[len(BEARER_PREFIX):].strip() or None
    return None


def identify(request: Request) -> Owner:
    """Authorization gate: resolve the request's Owner or raise Unauthorized."""
    owner = owner_for_token(bearer_token(request))
    if owner is None:
        raise Unauthorized()
    return owner


def delete_session(token: str) -> None:
    """Remove a session token from the store."""
    if not token:
        return
    with get_session() as session:
        entity = session.get(UserSession, token)
        if entity:
            session.delete(entity)
            session.commit()
