from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Make the medikeep package importable during local test runs
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from medikeep.core import config as core_config  # noqa: E402
from medikeep.core.rate_limiter import reset_limits  # noqa: E402
from medikeep.db import models  # noqa: E402
from medikeep.db import session as db_session  # noqa: E402
from medikeep.domain.records import Owner  # noqa: E402


def _clear_caches() -> None:
    core_config.get_settings.cache_clear()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture()
def db_env(tmp_path, monkeypatch):
    """Point the app at a temporary SQLite file and uploads dir, then reset cached settings/engine."""
    db_file = tmp_path / "test.db"
    uploads = tmp_path / "uploads"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    monkeypatch.setenv("UPLOADS_DIR", str(uploads))
    monkeypatch.setenv("SMTP_HOST", "")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    _clear_caches()
    reset_limits()

    engine = db_session.get_engine()
    models.Base.metadata.drop_all(bind=engine)
    models.Base.metadata.create_all(bind=engine)

    yield tmp_path

    try:
        models.Base.metadata.drop_all(bind=engine)
    finally:
        engine.dispose()
        _clear_caches()


@pytest.fixture()
def owner() -> Owner:
    return Owner(id="u1", email="u1@example.com", name="A. Ali")


@pytest.fixture()
def other_owner() -> Owner:
    return Owner(id="u2", email="u2@example.com", name="B. Baig")
