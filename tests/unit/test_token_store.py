"""Tests für den TokenStore (Einmal-Tokens aus Mails)."""
from datetime import timedelta

from sqlalchemy import update
from sqlalchemy.orm import Session

from core.clock import now, to_db_utc_naive
from models import MailToken, TokenPurpose


def _expire(services, token_id: str) -> None:
    with Session(services.engine) as s:
        s.execute(
            update(MailToken)
            .where(MailToken.id == token_id)
            .values(expires_at=to_db_utc_naive(now() - timedelta(minutes=1)))
        )
        s.commit()


def test_create_sets_ttl_and_random_id(services):
    t1 = services.tokens.create("a@x.com", TokenPurpose.sign_up)
    t2 = services.tokens.create("a@x.com", TokenPurpose.sign_up)

    assert t1.id != t2.id
    assert len(t1.id) >= 40
    assert t1.consumed is False
    assert t1.purpose == "sign_up"

    delta = t1.expires_at - to_db_utc_naive(now())
    assert timedelta(hours=23, minutes=59) < delta <= timedelta(hours=24)


def test_retrieve_unknown_returns_none(services):
    assert services.tokens.retrieve("does-not-exist") is None
    assert services.tokens.retrieve("") is None


def test_retrieve_returns_consumed_and_expired_tokens(services):
    t = services.tokens.create("a@x.com", TokenPurpose.password_reset)
    services.tokens.consume(t.id)
    _expire(services, t.id)

    got = services.tokens.retrieve(t.id)
    assert got is not None
    assert got.consumed is True
    assert got.is_expired(now()) is True


def test_consume_only_first_call_wins(services):
    t = services.tokens.create("a@x.com", TokenPurpose.sign_up)

    assert services.tokens.consume(t.id) is True
    assert services.tokens.consume(t.id) is False
    assert services.tokens.consume(t.id) is False
    assert services.tokens.retrieve(t.id).consumed is True


def test_consume_unknown_token_is_noop(services):
    assert services.tokens.consume("nope") is False
    assert services.tokens.consume("") is False


def test_consumed_token_never_valid_again(services):
    t = services.tokens.create("a@x.com", TokenPurpose.sign_up)
    assert services.tokens.retrieve(t.id).is_valid_for(TokenPurpose.sign_up, now())

    services.tokens.consume(t.id)
    for _ in range(3):
        got = services.tokens.retrieve(t.id)
        assert got.is_valid_for(TokenPurpose.sign_up, now()) is False


def test_expired_token_never_valid(services):
    t = services.tokens.create("a@x.com", TokenPurpose.password_reset)
    _expire(services, t.id)

    got = services.tokens.retrieve(t.id)
    assert got.is_valid_for(TokenPurpose.password_reset, now()) is False
    assert got.is_valid_for(TokenPurpose.sign_up, now()) is False


def test_purpose_must_match(services):
    t = services.tokens.create("a@x.com", TokenPurpose.sign_up)
    got = services.tokens.retrieve(t.id)
    assert got.is_valid_for(TokenPurpose.password_reset, now()) is False
