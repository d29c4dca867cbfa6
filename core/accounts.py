from sqlalchemy import select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.clock import utcnow_naive
from core.errors import Conflict
from models import Account, AccountRole


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


class AccountRepository:
    """Zugriff auf Accounts. Jeder Aufruf ist eine eigene Transaktion (last write wins)."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def get_by_email(self, email: str, confirmed_only: bool = False) -> Account | None:
        stmt = select(Account).where(Account.email == normalize_email(email))
        if confirmed_only:
            stmt = stmt.where(Account.email_confirmed.is_(True))
        with Session(self.engine, expire_on_commit=False) as s:
            return s.scalar(stmt)

    def get_by_id(self, account_id: int) -> Account | None:
        with Session(self.engine, expire_on_commit=False) as s:
            return s.get(Account, account_id)

    def insert(
        self,
        name: str,
        email: str,
        password_hash: str,
        role: AccountRole = AccountRole.normal,
        email_confirmed: bool = False,
    ) -> Account:
        account = Account(
            name=name,
            email=normalize_email(email),
            password_hash=password_hash,
            role=role.value,
            email_confirmed=email_confirmed,
        )
        with Session(self.engine, expire_on_commit=False) as s:
            s.add(account)
            try:
                s.commit()
            except IntegrityError:
                s.rollback()
                raise Conflict("email_exists", fields={"email": "This email is already registered"})
        return account

    def confirm_email(self, email: str) -> int:
        return self._update_by_email(email, email_confirmed=True)

    def reset_password(self, email: str, password_hash: str) -> int:
        return self._update_by_email(email, email_confirmed=True, password_hash=password_hash)

    def update_password_hash(self, account_id: int, password_hash: str) -> None:
        with Session(self.engine) as s:
            s.execute(
                update(Account)
                .where(Account.id == account_id)
                .values(password_hash=password_hash, updated_at=utcnow_naive())
            )
            s.commit()

    def _update_by_email(self, email: str, **values) -> int:
        values["updated_at"] = utcnow_naive()
        with Session(self.engine) as s:
            res = s.execute(
                update(Account)
                .where(Account.email == normalize_email(email))
                .values(**values)
            )
            s.commit()
            return res.rowcount
