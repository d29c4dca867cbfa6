"""Login, Registrierung, E-Mail-Bestätigung und Passwort-Reset.

Der Workflow hält keinen eigenen Zustand; alles Geteilte liegt in
AccountRepository und TokenStore. Jeder Ablauf liefert ein ``Outcome``,
das die Blueprints in Seite, Redirect oder JSON übersetzen.

Tokens werden vor jeder Änderung am Account verbraucht: nur der Aufruf,
dessen ``consume`` gewinnt, darf den Account anfassen.
"""
import enum
from dataclasses import dataclass, field
from typing import Callable, Optional

from flask import current_app

from core.accounts import AccountRepository
from core.clock import now
from core.context import AuthContext
from core.errors import AppError, AuthenticationFailure, Conflict, NotFound, ValidationError
from core.forms import ForgotPasswordForm, LoginForm, ResetPasswordForm, SignupForm
from core.hasher import CredentialHasher
from core.sessions import SessionArtifact, SessionManager
from core.tokens import TokenStore
from models import AccountRole, TokenPurpose

LinkBuilder = Callable[[str], str]


class OutcomeKind(str, enum.Enum):
    authenticated = "authenticated"
    logged_out = "logged_out"
    pending_confirmation = "pending_confirmation"
    reset_email_sent = "reset_email_sent"
    show_reset_form = "show_reset_form"
    validation_error = "validation_error"
    rejected = "rejected"
    not_found = "not_found"
    conflict = "conflict"


@dataclass
class Outcome:
    kind: OutcomeKind
    account_id: Optional[int] = None
    data: dict = field(default_factory=dict)
    session: Optional[SessionArtifact] = None
    error: Optional[AppError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def errors(self) -> dict:
        return self.error.fields if self.error else {}

    @property
    def status(self) -> int:
        return self.error.status if self.error else 200

    @classmethod
    def failed(cls, kind: OutcomeKind, error: AppError, **data) -> "Outcome":
        return cls(kind=kind, error=error, data=data)


class AuthWorkflow:
    def __init__(
        self,
        accounts: AccountRepository,
        tokens: TokenStore,
        hasher: CredentialHasher,
        sessions: SessionManager,
        notifier,
        reveal_unknown_email: bool = False,
    ):
        self.accounts = accounts
        self.tokens = tokens
        self.hasher = hasher
        self.sessions = sessions
        self.notifier = notifier
        self.reveal_unknown_email = reveal_unknown_email
        self._dummy_hash: str | None = None

    # ------------------------------------------------------------
    # Login / Logout
    # ------------------------------------------------------------
    def login(self, data) -> Outcome:
        form = LoginForm.from_data(data)
        try:
            form.validate()
        except ValidationError as e:
            return Outcome.failed(OutcomeKind.validation_error, e, email=form.email)

        account = self.accounts.get_by_email(form.email, confirmed_only=True)
        if account is None:
            # gleiche Laufzeit wie bei falschem Passwort
            self.hasher.verify(form.password, self._get_dummy_hash())
            ok = False
        else:
            ok = self.hasher.verify(form.password, account.password_hash)

        if not ok:
            current_app.logger.warning("Failed login by %s", form.email)
            return Outcome.failed(
                OutcomeKind.rejected, AuthenticationFailure(), email=form.email
            )

        if self.hasher.needs_rehash(account.password_hash):
            self.accounts.update_password_hash(account.id, self.hasher.hash(form.password))

        current_app.logger.info("Login by %s (account %s)", account.email, account.id)
        return self._authenticated(account.id)

    def logout(self, ctx: AuthContext) -> Outcome:
        if ctx.is_authenticated:
            current_app.logger.info("Logout of account %s", ctx.account_id)
        return Outcome(OutcomeKind.logged_out, session=self.sessions.destroy())

    # ------------------------------------------------------------
    # Registrierung + Bestätigung
    # ------------------------------------------------------------
    def signup(self, data, link_for: LinkBuilder) -> Outcome:
        form = SignupForm.from_data(data)
        try:
            form.validate()
        except ValidationError as e:
            return Outcome.failed(
                OutcomeKind.validation_error, e, name=form.name, email=form.email
            )

        form_data = {"name": form.name, "email": form.email}
        if self.accounts.get_by_email(form.email) is not None:
            return self._duplicate_signup(form_data)

        try:
            account = self.accounts.insert(
                name=form.name,
                email=form.email,
                password_hash=self.hasher.hash(form.password),
                role=AccountRole.normal,
            )
        except Conflict as e:
            return self._duplicate_signup(form_data, e)

        token = self.tokens.create(account.email, TokenPurpose.sign_up)
        self.notifier.send_welcome(account, link_for(token.id))
        current_app.logger.info("Signup of %s (account %s), confirmation pending", account.email, account.id)
        return Outcome(OutcomeKind.pending_confirmation, account_id=account.id, data=form_data)

    def _duplicate_signup(self, form_data: dict, error: Conflict | None = None) -> Outcome:
        email = form_data["email"]
        current_app.logger.warning("Signup for already registered email %s", email)
        if self.reveal_unknown_email:
            return Outcome.failed(
                OutcomeKind.conflict,
                error or Conflict("email_exists", fields={"email": "This email is already registered"}),
                **form_data,
            )
        # gleiche Antwort wie bei neuer Registrierung, Hinweis geht nur an den Inhaber
        self.notifier.send_account_exists(email)
        return Outcome(OutcomeKind.pending_confirmation, data=form_data)

    def verify_signup(self, token_id: str) -> Outcome:
        token = self.tokens.retrieve(token_id)
        if token is None:
            return self._not_found("verify: unknown token")

        if not token.is_valid_for(TokenPurpose.sign_up, now()):
            # tote Tokens trotzdem verbrauchen (kein wiederholtes Abtasten)
            self.tokens.consume(token.id)
            return self._not_found("verify: dead token for %s", token.email)

        if not self.tokens.consume(token.id):
            return self._not_found("verify: token for %s already used", token.email)

        self.accounts.confirm_email(token.email)
        account = self.accounts.get_by_email(token.email)
        if account is None:
            return self._not_found("verify: no account for %s", token.email)

        current_app.logger.info("Email confirmed for %s (account %s)", account.email, account.id)
        return self._authenticated(account.id)

    # ------------------------------------------------------------
    # Passwort vergessen / zurücksetzen
    # ------------------------------------------------------------
    def forgot_password(self, data, link_for: LinkBuilder) -> Outcome:
        form = ForgotPasswordForm.from_data(data)
        try:
            form.validate()
        except ValidationError as e:
            return Outcome.failed(OutcomeKind.validation_error, e, email=form.email)

        account = self.accounts.get_by_email(form.email)
        if account is None:
            current_app.logger.warning("Password reset requested for unknown email %s", form.email)
            if self.reveal_unknown_email:
                return Outcome.failed(
                    OutcomeKind.validation_error,
                    ValidationError(
                        "unknown_email", fields={"email": "There is no account with this email"}
                    ),
                    email=form.email,
                )
            return Outcome(OutcomeKind.reset_email_sent, data={"email": form.email})

        token = self.tokens.create(account.email, TokenPurpose.password_reset)
        self.notifier.send_password_reset(account.email, link_for(token.id))
        return Outcome(OutcomeKind.reset_email_sent, data={"email": form.email})

    def reset_password_form(self, token_id: str) -> Outcome:
        token = self.tokens.retrieve(token_id)
        if token is None:
            return self._not_found("reset: unknown token")
        if not token.is_valid_for(TokenPurpose.password_reset, now()):
            self.tokens.consume(token.id)
            return self._not_found("reset: dead token for %s", token.email)
        return Outcome(OutcomeKind.show_reset_form, data={"token_id": token.id})

    def reset_password_submit(self, token_id: str, data) -> Outcome:
        form = ResetPasswordForm.from_data(data)
        try:
            form.validate()
        except ValidationError as e:
            # Token bleibt unverbraucht, Formular wird neu angezeigt
            return Outcome.failed(OutcomeKind.validation_error, e, token_id=token_id)

        # erneut prüfen: das Formular kann veraltet sein
        token = self.tokens.retrieve(token_id)
        if token is None:
            return self._not_found("reset: unknown token")
        if not token.is_valid_for(TokenPurpose.password_reset, now()):
            self.tokens.consume(token.id)
            return self._not_found("reset: dead token for %s", token.email)

        if not self.tokens.consume(token.id):
            return self._not_found("reset: token for %s already used", token.email)

        self.accounts.reset_password(token.email, self.hasher.hash(form.password1))
        account = self.accounts.get_by_email(token.email)
        if account is None:
            return self._not_found("reset: no account for %s", token.email)

        current_app.logger.info("Password reset for %s (account %s)", account.email, account.id)
        return self._authenticated(account.id)

    # ------------------------------------------------------------
    def _authenticated(self, account_id: int) -> Outcome:
        return Outcome(
            OutcomeKind.authenticated,
            account_id=account_id,
            session=self.sessions.establish(account_id),
        )

    def _not_found(self, msg: str, *args) -> Outcome:
        current_app.logger.warning(msg, *args)
        return Outcome.failed(OutcomeKind.not_found, NotFound())

    def _get_dummy_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = self.hasher.hash("not-a-real-password")
        return self._dummy_hash
