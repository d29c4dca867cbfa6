from dataclasses import dataclass
from typing import Optional

from flask import current_app, jsonify, redirect, request, url_for

from core.errors import Forbidden, ValidationError
from models import Account


@dataclass(frozen=True)
class AuthContext:
    """Wer ruft an? Wird pro Request gebaut und explizit weitergereicht."""

    account: Optional[Account] = None

    @property
    def is_authenticated(self) -> bool:
        return self.account is not None

    @property
    def account_id(self) -> Optional[int]:
        return self.account.id if self.account else None

    @property
    def is_admin(self) -> bool:
        return bool(self.account and self.account.is_admin)

    def require_admin(self) -> None:
        if not self.is_admin:
            raise Forbidden("admin_only")


def wants_json() -> bool:
    if request.is_json:
        return True
    best = request.accept_mimetypes.best_match(["text/html", "application/json"])
    return best == "application/json" and not request.accept_mimetypes.accept_html


def json_error(msg, code=400, fields: dict | None = None):
    body = {"ok": False, "error": msg}
    if fields:
        body["fields"] = fields
    return jsonify(body), code


def request_data():
    """Formular- oder JSON-Body; JSON muss ein Objekt sein."""
    if not request.is_json:
        return request.form
    data = request.get_json(force=True, silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("body_not_an_object")
    return data


def load_auth_context(req=None) -> AuthContext:
    req = req or request
    svc = current_app.extensions["messageboard"]
    account_id = svc.sessions.current(req)
    if account_id is None:
        return AuthContext()
    account = svc.accounts.get_by_id(account_id)
    if account is None or not account.email_confirmed:
        return AuthContext()
    return AuthContext(account)


def with_auth_context(fn):
    """Optionale Identität: ``ctx`` kann anonym sein."""

    def inner(*args, **kwargs):
        return fn(*args, ctx=load_auth_context(), **kwargs)

    inner.__name__ = fn.__name__
    return inner


def auth_required(admin: bool = False):
    def wrapper(fn):
        def inner(*args, **kwargs):
            ctx = load_auth_context()
            if not ctx.is_authenticated:
                if wants_json():
                    return json_error("unauthorized", 401)
                return redirect(url_for("auth.login", next=request.path))
            if admin:
                ctx.require_admin()
            return fn(*args, ctx=ctx, **kwargs)

        inner.__name__ = fn.__name__
        return inner

    return wrapper
