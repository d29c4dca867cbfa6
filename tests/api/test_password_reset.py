"""Tests für /password/forgot und /password/reset/<token>."""
from datetime import timedelta

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from core.clock import now, to_db_utc_naive
from models import MailToken, TokenPurpose


def _reset_token(services, email: str) -> MailToken | None:
    with Session(services.engine) as s:
        return s.scalar(
            select(MailToken).where(
                MailToken.email == email,
                MailToken.purpose == TokenPurpose.password_reset.value,
            )
        )


def test_forgot_password_page(test_client):
    r = test_client.get("/password/forgot")
    assert r.status_code == 200


def test_forgot_password_invalid_email(test_client):
    r = test_client.post("/password/forgot", json={"email": "invalid"})
    assert r.status_code == 400
    assert "email" in r.get_json()["fields"]


def test_forgot_password_unknown_email_returns_ok(test_client, outbox):
    r = test_client.post("/password/forgot", json={"email": "unknown@example.com"})
    assert r.status_code == 200
    assert r.get_json()["ok"] is True
    assert outbox == []


def test_forgot_password_creates_token_and_sends_link(test_client, services, outbox, create_account):
    create_account("reset@example.com", "testpass123")
    r = test_client.post("/password/forgot", data={"email": "reset@example.com"})
    assert r.status_code == 200
    assert b"reset@example.com" in r.data

    token = _reset_token(services, "reset@example.com")
    assert token is not None
    assert token.consumed is False
    assert f"http://testserver/password/reset/{token.id}" in outbox[-1]["text"]


def test_reset_form_valid_token(test_client, services, create_account):
    create_account("ok@example.com", "oldpass123")
    token = services.tokens.create("ok@example.com", TokenPurpose.password_reset)
    r = test_client.get(f"/password/reset/{token.id}")
    assert r.status_code == 200
    assert b'name="password1"' in r.data
    assert services.tokens.retrieve(token.id).consumed is False


def test_reset_form_unknown_token(test_client):
    assert test_client.get("/password/reset/invalid").status_code == 404


def test_reset_form_expired_token_consumed(test_client, services, create_account):
    create_account("expired@example.com", "testpass123")
    token = services.tokens.create("expired@example.com", TokenPurpose.password_reset)
    with Session(services.engine) as s:
        s.execute(
            update(MailToken)
            .where(MailToken.id == token.id)
            .values(expires_at=to_db_utc_naive(now() - timedelta(minutes=1)))
        )
        s.commit()

    r = test_client.get(f"/password/reset/{token.id}")
    assert r.status_code == 404
    assert services.tokens.retrieve(token.id).consumed is True


def test_reset_password_too_short_keeps_token(test_client, services, create_account):
    create_account("short@example.com", "oldpass123")
    token = services.tokens.create("short@example.com", TokenPurpose.password_reset)

    r = test_client.post(
        f"/password/reset/{token.id}", data={"password1": "short", "password2": "short"}
    )
    assert r.status_code == 400
    assert b'data-field="password1"' in r.data
    assert services.tokens.retrieve(token.id).consumed is False


def test_reset_password_mismatch(test_client, services, create_account):
    create_account("mm@example.com", "oldpass123")
    token = services.tokens.create("mm@example.com", TokenPurpose.password_reset)
    r = test_client.post(
        f"/password/reset/{token.id}", json={"password1": "newpass123", "password2": "other123"}
    )
    assert r.status_code == 400
    assert "password2" in r.get_json()["fields"]


def test_reset_password_success(test_client, services, create_account):
    create_account("ok@example.com", "oldpass123", confirmed=False)
    token = services.tokens.create("ok@example.com", TokenPurpose.password_reset)

    r = test_client.post(
        f"/password/reset/{token.id}",
        data={"password1": "newpass123", "password2": "newpass123"},
        follow_redirects=False,
    )
    assert r.status_code == 302
    assert "mb_session=" in str(r.headers.get("Set-Cookie", ""))

    account = services.accounts.get_by_email("ok@example.com")
    assert account.email_confirmed is True
    assert services.hasher.verify("newpass123", account.password_hash)
    assert services.tokens.retrieve(token.id).consumed is True


def test_reset_password_twice_only_first_password_works(app, services, create_account):
    create_account("twice@example.com", "oldpass123")
    token = services.tokens.create("twice@example.com", TokenPurpose.password_reset)

    c1 = app.test_client()
    c2 = app.test_client()
    r1 = c1.post(f"/password/reset/{token.id}", json={"password1": "first123", "password2": "first123"})
    r2 = c2.post(f"/password/reset/{token.id}", json={"password1": "second123", "password2": "second123"})
    assert r1.status_code == 200
    assert r2.status_code == 404

    login = app.test_client()
    assert login.post("/login", json={"email": "twice@example.com", "password": "first123"}).status_code == 200
    assert login.post("/login", json={"email": "twice@example.com", "password": "second123"}).status_code == 401


def test_reset_with_sign_up_token_not_found(test_client, services, create_account):
    create_account("wrong@example.com", "oldpass123")
    token = services.tokens.create("wrong@example.com", TokenPurpose.sign_up)
    r = test_client.post(
        f"/password/reset/{token.id}", data={"password1": "newpass123", "password2": "newpass123"}
    )
    assert r.status_code == 404
    assert services.tokens.retrieve(token.id).consumed is True
    account = services.accounts.get_by_email("wrong@example.com")
    assert services.hasher.verify("oldpass123", account.password_hash)
