from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from starlette.requests import Request

from medikeep.core.errors import Unauthorized
from medikeep.db.models import UserSession
from medikeep.db.session import get_session
from medikeep.repositories.sql_repository import SQLRepository
from medikeep.services.session_service import delete_session, identify, issue_session, owner_for_token


def _request(headers: dict[str, str]) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in headers.items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw})


def test_identify_resolves_owner_claims(db_env):
    user = SQLRepository().create_user("alice@example.com", "Alice")
    token = issue_session(user.id)
    owner = identify(_request({"Authorization": f"Bearer {token}"}))
    assert owner.id == user.id
    assert owner.email == "alice@example.com"
    assert owner.name == "Alice"


@pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer nope"}, {"Authorization": "Basic abc"}])
def test_identify_rejects_missing_or_unknown_tokens(db_env, headers):
    with pytest.raises(Unauthorized):
        identify(_request(headers))


def test_expired_session_is_removed(db_env):
    user = SQLRepository().create_user("bob@example.com")
    token = issue_session(user.id)
    with get_session() as session:
        entity = session.get(UserSession, token)
        entity.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
        session.commit()
    assert owner_for_token(token) is None
    with get_session() as session:
        assert session.get(UserSession, token) is None


def test_delete_session_revokes_token(db_env):
    user = SQLRepository().create_user("carol@example.com")
    token = issue_session(user.id)
    delete_session(token)
    assert owner_for_token(token) is None
