"""
Shared fixtures: temporary SQLite database, settings factory and fakes for
the SMTP mailer and the identity provider.
"""
from __future__ import annotations

from dataclasses import replace
import sys
from pathlib import Path

import pytest

# make the api package importable when running from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from api.core import config as core_config  # noqa: E402
from api.db import models  # noqa: E402
from api.db import session as db_session  # noqa: E402


class FakeMailer:
    """Records every message; ``fail`` makes send_email report a transport error."""

    def __init__(self, fail: bool = False, on_send=None):
        self.fail = fail
        self.on_send = on_send
        self.sent: list[dict] = []

    def send_email(self, subject, to_email, html_body, text_body=None):
        if self.on_send:
            self.on_send()
        if self.fail:
            return False
        self.sent.append({"subject": subject, "to": to_email, "html": html_body, "text": text_body})
        return True


class FakeIdentityProvider:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.deleted: list[str] = []

    def delete_user(self, uid):
        if self.error:
            raise self.error
        self.deleted.append(uid)


@pytest.fixture()
def db_env(tmp_path, monkeypatch):
    """Temporary SQLite database; settings and engine caches are reset around each test."""
    db_file = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    core_config.get_settings.cache_clear()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]

    engine = db_session.get_engine()
    models.Base.metadata.drop_all(bind=engine)
    models.Base.metadata.create_all(bind=engine)

    yield db_file

    models.Base.metadata.drop_all(bind=engine)
    engine.dispose()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]
    core_config.get_settings.cache_clear()


@pytest.fixture()
def settings(monkeypatch):
    for name in ("SMTP_HOST", "SMTP_USER", "SMTP_PASSWORD", "SMTP_FROM", "ADMIN_DELETE_TOKEN", "APP_NAME"):
        monkeypatch.delenv(name, raising=False)
    core_config.get_settings.cache_clear()
    base = core_config.get_settings()
    core_config.get_settings.cache_clear()
    return replace(base, app_env="test")


@pytest.fixture()
def mailer():
    return FakeMailer()


@pytest.fixture()
def identity():
    return FakeIdentityProvider()
