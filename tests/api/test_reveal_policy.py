"""REVEAL_UNKNOWN_EMAIL=true: Existenz eines Accounts wird feldbezogen gemeldet."""
import pytest


@pytest.fixture(scope="function")
def reveal_app(app_factory):
    return app_factory(REVEAL_UNKNOWN_EMAIL=True)


@pytest.fixture(scope="function")
def test_client(reveal_app):
    return reveal_app.test_client()


def test_unknown_email_is_reported(test_client):
    r = test_client.post("/password/forgot", json={"email": "ghost@example.com"})
    assert r.status_code == 400
    assert "email" in r.get_json()["fields"]


def test_unknown_email_html_form_error(test_client):
    r = test_client.post("/password/forgot", data={"email": "ghost@example.com"})
    assert r.status_code == 400
    assert b'data-field="email"' in r.data


def test_duplicate_signup_is_conflict(test_client, reveal_app):
    body = {"name": "B", "email": "a@x.com", "password": "secret2", "passwordAgain": "secret2"}
    assert test_client.post("/signup", json=body).status_code == 200

    r = test_client.post("/signup", json=body)
    assert r.status_code == 409
    assert r.get_json()["error"] == "conflict"
    assert "email" in r.get_json()["fields"]
    outbox = reveal_app.extensions["messageboard"].notifier.outbox
    assert [m["tag"] for m in outbox] == ["welcome"]


def test_duplicate_signup_html_form_error(test_client):
    body = {"name": "B", "email": "a@x.com", "password": "secret2", "passwordAgain": "secret2"}
    test_client.post("/signup", data=body)
    r = test_client.post("/signup", data=body)
    assert r.status_code == 409
    assert b'data-field="email"' in r.data
