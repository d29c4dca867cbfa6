# auth.py
from flask import (
    Blueprint,
    current_app,
    jsonify,
    make_response,
    redirect,
    render_template,
    request,
    url_for,
)

from core.context import json_error, request_data, wants_json, with_auth_context
from core.workflow import Outcome, OutcomeKind

bp = Blueprint("auth", __name__)


def _workflow():
    return current_app.extensions["messageboard"].workflow


def _external_url(endpoint: str, **values) -> str:
    base = current_app.config.get("BASE_URL") or request.url_root
    return base.rstrip("/") + url_for(endpoint, **values)


def _safe_next() -> str:
    nxt = request.args.get("next") or ""
    # nur relative Pfade (kein Open Redirect)
    if nxt.startswith("/") and not nxt.startswith("//"):
        return nxt
    return url_for("messages.index")


def _not_found():
    if wants_json():
        return json_error("not_found", 404)
    return render_template("errors/not_found.html"), 404


def _failed(outcome: Outcome, template: str, **ctx):
    if outcome.kind == OutcomeKind.not_found:
        return _not_found()
    if wants_json():
        return json_error(outcome.error.code, outcome.status, outcome.errors)
    return (
        render_template(
            template,
            form=outcome.data,
            errors=outcome.errors,
            error=outcome.error.message if outcome.kind == OutcomeKind.rejected else None,
            **ctx,
        ),
        outcome.status,
    )


def _signed_in(outcome: Outcome):
    if wants_json():
        resp = make_response(jsonify({"ok": True, "account_id": outcome.account_id}))
    else:
        resp = make_response(redirect(_safe_next()))
    return outcome.session.apply(resp)


# --------------------------------------------------------
# Login / Logout
# --------------------------------------------------------
@bp.get("/login")
@with_auth_context
def login(ctx):
    if ctx.is_authenticated:
        return redirect(url_for("messages.index"))
    return render_template("auth/login.html", form={}, errors={}, error=None)


@bp.post("/login")
def login_submit():
    outcome = _workflow().login(request_data())
    if not outcome.ok:
        return _failed(outcome, "auth/login.html")
    return _signed_in(outcome)


@bp.route("/logout", methods=["GET", "POST"])
@with_auth_context
def logout(ctx):
    outcome = _workflow().logout(ctx)
    if wants_json():
        resp = make_response(jsonify({"ok": True}))
    else:
        resp = make_response(redirect(url_for("auth.login")))
    return outcome.session.apply(resp)


# --------------------------------------------------------
# Registrierung
# --------------------------------------------------------
@bp.get("/signup")
def signup():
    return render_template("auth/signup.html", form={}, errors={})


@bp.post("/signup")
def signup_submit():
    outcome = _workflow().signup(
        request_data(),
        link_for=lambda token_id: _external_url("auth.verify_signup", token_id=token_id),
    )
    if not outcome.ok:
        return _failed(outcome, "auth/signup.html")
    if wants_json():
        return jsonify({"ok": True, "status": outcome.kind.value, "email": outcome.data["email"]})
    return render_template("auth/almost_signed_up.html", form=outcome.data)


@bp.get("/signup/verify/<token_id>")
def verify_signup(token_id: str):
    outcome = _workflow().verify_signup(token_id)
    if not outcome.ok:
        return _not_found()
    return _signed_in(outcome)


# --------------------------------------------------------
# Passwort vergessen / zurücksetzen
# --------------------------------------------------------
@bp.get("/password/forgot")
def forgot_password():
    return render_template("auth/forgot_password.html", form={}, errors={})


@bp.post("/password/forgot")
def forgot_password_submit():
    outcome = _workflow().forgot_password(
        request_data(),
        link_for=lambda token_id: _external_url("auth.reset_password", token_id=token_id),
    )
    if not outcome.ok:
        return _failed(outcome, "auth/forgot_password.html")
    if wants_json():
        return jsonify({"ok": True, "status": outcome.kind.value})
    return render_template("auth/forgot_password_sent.html", email=outcome.data["email"])


@bp.get("/password/reset/<token_id>")
def reset_password(token_id: str):
    outcome = _workflow().reset_password_form(token_id)
    if not outcome.ok:
        return _not_found()
    if wants_json():
        return jsonify({"ok": True, "status": outcome.kind.value})
    return render_template("auth/reset_password.html", token_id=token_id, errors={})


@bp.post("/password/reset/<token_id>")
def reset_password_submit(token_id: str):
    outcome = _workflow().reset_password_submit(token_id, request_data())
    if not outcome.ok:
        return _failed(outcome, "auth/reset_password.html", token_id=token_id)
    return _signed_in(outcome)
