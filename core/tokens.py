import secrets
from datetime import timedelta

from sqlalchemy import update
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from core.clock import now, to_db_utc_naive
from models import MailToken, TokenPurpose

DEFAULT_TTL = timedelta(hours=24)


class TokenStore:
    """Einmal-Tokens für Bestätigungs- und Reset-Links.

    ``retrieve`` filtert bewusst nicht nach Gültigkeit; Zweck und Ablauf
    prüft der Aufrufer. ``consume`` ist ein bedingtes Update und meldet,
    ob genau dieser Aufruf das Token verbraucht hat.
    """

    def __init__(self, engine: Engine, ttl: timedelta = DEFAULT_TTL):
        self.engine = engine
        self.ttl = ttl

    def create(self, email: str, purpose: TokenPurpose) -> MailToken:
        token = MailToken(
            id=secrets.token_urlsafe(32),
            email=email,
            purpose=purpose.value,
            expires_at=to_db_utc_naive(now() + self.ttl),
            consumed=False,
        )
        with Session(self.engine, expire_on_commit=False) as s:
            s.add(token)
            s.commit()
        return token

    def retrieve(self, token_id: str) -> MailToken | None:
        if not token_id:
            return None
        with Session(self.engine, expire_on_commit=False) as s:
            return s.get(MailToken, token_id)

    def consume(self, token_id: str) -> bool:
        if not token_id:
            return False
        with Session(self.engine) as s:
            res = s.execute(
                update(MailToken)
                .where(MailToken.id == token_id, MailToken.consumed.is_(False))
                .values(consumed=True)
            )
            s.commit()
            return res.rowcount == 1
