from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Text, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from core.clock import as_utc_aware, utcnow_naive


class Base(DeclarativeBase):
    """Basis aller SQLAlchemy-Modelle."""
    pass


class AccountRole(str, enum.Enum):
    normal = "normal"
    admin = "admin"


class TokenPurpose(str, enum.Enum):
    sign_up = "sign_up"
    password_reset = "password_reset"


# ------------------------------------------------------------
# Account
# ------------------------------------------------------------
class Account(Base):
    __tablename__ = "account"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    email: Mapped[str] = mapped_column(Text, unique=True, index=True, nullable=False)
    email_confirmed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # immer argon2-Hash, nie Klartext
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[str] = mapped_column(Text, default=AccountRole.normal.value, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow_naive, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow_naive, onupdate=utcnow_naive, nullable=False
    )

    @property
    def is_admin(self) -> bool:
        return self.role == AccountRole.admin.value

    def __repr__(self) -> str:
        return f"<Account id={self.id} email={self.email!r} role={self.role}>"


# ------------------------------------------------------------
# MailToken (Bestätigungs-/Reset-Link)
# ------------------------------------------------------------
class MailToken(Base):
    """Einmal-Token aus der Mail. Verweist per E-Mail-Wert (kein FK) auf den Account."""
    __tablename__ = "mail_token"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    email: Mapped[str] = mapped_column(Text, index=True, nullable=False)
    purpose: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    consumed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow_naive, nullable=False)

    def is_expired(self, now: datetime) -> bool:
        return as_utc_aware(self.expires_at) <= as_utc_aware(now)

    def is_valid_for(self, purpose: TokenPurpose, now: datetime) -> bool:
        return (
            not self.consumed
            and self.purpose == purpose.value
            and not self.is_expired(now)
        )


# ------------------------------------------------------------
# Message (Nachrichten der angemeldeten Nutzer)
# ------------------------------------------------------------
class Message(Base):
    __tablename__ = "message"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[int] = mapped_column(
        ForeignKey("account.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow_naive, nullable=False)

    author: Mapped["Account"] = relationship("Account")
