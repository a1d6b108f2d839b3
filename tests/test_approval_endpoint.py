from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from api.app import create_app
from api.repositories.sql_repository import SQLRepository
from conftest import FakeIdentityProvider, FakeMailer


def _client(settings, mailer=None):
    app = create_app(settings, identity_provider=FakeIdentityProvider(), mailer=mailer, repository=SQLRepository())
    return TestClient(app)


def _seed(status: str = "pending"):
    repo = SQLRepository()
    repo.create_user("u1", email="owner@example.com", name="Maria", station_name="Posto Sol", approval_status=status)
    repo.create_approval_token("u1", token="abc123", expires_at=datetime.now(timezone.utc) + timedelta(hours=12))
    return repo


def test_approve_link_renders_success_page(db_env, settings, mailer):
    repo = _seed()
    with _client(settings, mailer) as client:
        resp = client.get("/approval", params={"token": "abc123", "action": "APPROVE"})

    assert resp.status_code == 200
    assert "text/html" in resp.headers["content-type"]
    assert "Approved" in resp.text
    assert mailer.sent[0]["to"] == "owner@example.com"
    assert "APPROVED" in mailer.sent[0]["subject"]
    assert repo.get_user("u1").approval_status == "Approved"
    token = repo.get_approval_token("abc123")
    assert token.used is True
    assert token.action == "approve"


def test_resubmission_link_with_reason(db_env, settings, mailer):
    repo = _seed()
    with _client(settings, mailer) as client:
        resp = client.get("/approval", params={"token": "abc123", "action": "resubmission", "reason": "ID photo blurry"})

    assert resp.status_code == 200
    assert "Resubmission" in resp.text
    assert "Document Review Required" in mailer.sent[0]["subject"]
    assert "ID photo blurry" in mailer.sent[0]["html"]
    user = repo.get_user("u1")
    assert user.approval_status == "Resubmission"
    assert user.rejection_reason == "ID photo blurry"
    assert repo.get_approval_token("abc123").action == "resubmission"


def test_missing_params_return_400(db_env, settings, mailer):
    _seed()
    with _client(settings, mailer) as client:
        assert client.get("/approval").status_code == 400
        resp = client.get("/approval", params={"token": "abc123", "action": "maybe"})
    assert resp.status_code == 400
    assert resp.text == "Invalid request"
    assert mailer.sent == []


def test_unknown_token_returns_404_without_side_effects(db_env, settings, mailer):
    repo = _seed()
    with _client(settings, mailer) as client:
        resp = client.get("/approval", params={"token": "does-not-exist", "action": "approve"})
    assert resp.status_code == 404
    assert resp.text == "Token not found"
    assert mailer.sent == []
    assert repo.get_user("u1").approval_status == "pending"


def test_expired_token_returns_410(db_env, settings, mailer):
    repo = _seed()
    repo.create_approval_token("u1", token="stale", expires_at=datetime.now(timezone.utc) - timedelta(days=1))
    with _client(settings, mailer) as client:
        resp = client.get("/approval", params={"token": "stale", "action": "approve"})
    assert resp.status_code == 410
    assert resp.text == "Token expired"
    assert repo.get_approval_token("stale").used is True
    assert mailer.sent == []


def test_user_not_pending_returns_400(db_env, settings, mailer):
    _seed(status="Approved")
    with _client(settings, mailer) as client:
        resp = client.get("/approval", params={"token": "abc123", "action": "approve"})
    assert resp.status_code == 400
    assert resp.text == "User not pending"
    assert mailer.sent == []


def test_second_click_is_gone(db_env, settings, mailer):
    repo = _seed()
    with _client(settings, mailer) as client:
        first = client.get("/approval", params={"token": "abc123", "action": "approve"})
        second = client.get("/approval", params={"token": "abc123", "action": "resubmission"})
    assert first.status_code == 200
    assert second.status_code == 410
    assert second.text == "Token used"
    assert len(mailer.sent) == 1
    assert repo.get_user("u1").approval_status == "Approved"


def test_unconfigured_mail_transport_returns_500(db_env, settings):
    repo = _seed()
    # settings fixture carries no SMTP credentials, so the factory builds no mailer
    with _client(settings, None) as client:
        resp = client.get("/approval", params={"token": "abc123", "action": "approve"})
    assert resp.status_code == 500
    assert "Status remains pending" in resp.text
    assert repo.get_user("u1").approval_status == "pending"
    assert repo.get_approval_token("abc123").used is False


def test_commit_guard_failure_returns_500(db_env, settings):
    repo = _seed()
    mailer = FakeMailer(on_send=lambda: repo.update_user_status("u1", "Resubmission"))
    with _client(settings, mailer) as client:
        resp = client.get("/approval", params={"token": "abc123", "action": "approve"})
    assert resp.status_code == 500
    assert resp.text.startswith("Server error:")
    assert repo.get_approval_token("abc123").used is False


def test_health(settings, mailer):
    with _client(settings, mailer) as client:
        assert client.get("/health").json() == {"ok": True}


def test_responses_carry_security_headers(db_env, settings, mailer):
    _seed()
    with _client(settings, mailer) as client:
        resp = client.get("/approval", params={"token": "abc123", "action": "approve"})
    assert resp.headers["X-Frame-Options"] == "DENY"
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert "default-src 'self'" in resp.headers["Content-Security-Policy"]
    assert "Strict-Transport-Security" not in resp.headers
