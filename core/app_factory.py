import os
from dataclasses import dataclass
from datetime import timedelta

from flask import Flask, jsonify, render_template
from flask_cors import CORS
from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.accounts import AccountRepository
from core.clock import now
from core.config import load_config
from core.context import json_error, wants_json
from core.db import create_db_engine, ensure_schema
from core.errors import AppError, NotFound
from core.hasher import CredentialHasher
from core.sessions import SessionManager
from core.tokens import TokenStore
from core.workflow import AuthWorkflow
from mail import Notifier
from models import AccountRole


@dataclass
class Services:
    engine: Engine
    hasher: CredentialHasher
    accounts: AccountRepository
    tokens: TokenStore
    sessions: SessionManager
    notifier: Notifier
    workflow: AuthWorkflow


def build_services(cfg: dict) -> Services:
    engine = create_db_engine(cfg["DATABASE_URL"])
    hasher = CredentialHasher.from_config(cfg)
    accounts = AccountRepository(engine)
    tokens = TokenStore(engine, ttl=timedelta(hours=cfg["MAIL_TOKEN_TTL_HOURS"]))
    sessions = SessionManager.from_config(cfg)
    notifier = Notifier(cfg)
    workflow = AuthWorkflow(
        accounts,
        tokens,
        hasher,
        sessions,
        notifier,
        reveal_unknown_email=cfg["REVEAL_UNKNOWN_EMAIL"],
    )
    return Services(engine, hasher, accounts, tokens, sessions, notifier, workflow)


def _ensure_admin(app: Flask, svc: Services) -> None:
    email = app.config.get("ADMIN_EMAIL")
    password = app.config.get("ADMIN_PASSWORD")
    if not email or not password:
        return
    if svc.accounts.get_by_email(email) is not None:
        return
    svc.accounts.insert(
        name="admin",
        email=email,
        password_hash=svc.hasher.hash(password),
        role=AccountRole.admin,
        email_confirmed=True,
    )
    app.logger.info("Default admin account created: %s", email)


def create_app(overrides: dict | None = None) -> Flask:
    ROOT = os.path.dirname(os.path.abspath(__file__))
    ROOT = os.path.dirname(ROOT)  # zurück ins Projekt-Root

    cfg = load_config(overrides)

    app = Flask(
        __name__,
        static_folder=os.path.join(ROOT, "static"),
        static_url_path="/static",
        template_folder=os.path.join(ROOT, "templates"),
    )
    app.config.update(cfg)
    app.secret_key = cfg["SECRET_KEY"]
    app.logger.setLevel(cfg["LOG_LEVEL"])

    # Im Test/Dev Caching hart deaktivieren
    if not cfg["IS_PRODUCTION"]:
        app.config["SEND_FILE_MAX_AGE_DEFAULT"] = 0

    svc = build_services(cfg)
    ensure_schema(svc.engine)
    app.extensions["messageboard"] = svc

    # --- CORS (nur Auth-Endpunkte) -------------------------
    CORS(
        app,
        resources={
            r"/login": {"origins": cfg["ALLOWED_ORIGINS"]},
            r"/logout": {"origins": cfg["ALLOWED_ORIGINS"]},
            r"/signup*": {"origins": cfg["ALLOWED_ORIGINS"]},
            r"/password/*": {"origins": cfg["ALLOWED_ORIGINS"]},
            r"/messages*": {"origins": cfg["ALLOWED_ORIGINS"]},
        },
        supports_credentials=True,
        allow_headers=["Content-Type", "Authorization"],
        methods=["GET", "POST", "OPTIONS"],
    )

    @app.after_request
    def add_headers(resp):
        resp.headers.setdefault("Cache-Control", "no-store")
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        resp.headers.setdefault("X-Frame-Options", "DENY")
        resp.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        return resp

    # --- Fehlerbehandlung ---------------------------------
    @app.errorhandler(AppError)
    def handle_app_error(e: AppError):
        if wants_json():
            return json_error(e.code, e.status, e.fields)
        if isinstance(e, NotFound):
            return render_template("errors/not_found.html"), 404
        return render_template("errors/error.html", error=e), e.status

    @app.errorhandler(404)
    def handle_404(e):
        if wants_json():
            return json_error("not_found", 404)
        return render_template("errors/not_found.html"), 404

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(e):
        # Persistenzfehler: nicht wiederholen, nur loggen
        app.logger.exception("database error")
        if wants_json():
            return json_error("server_error", 500)
        return render_template("errors/error.html", error=None), 500

    @app.get("/healthz")
    def health():
        try:
            with Session(svc.engine) as s:
                s.execute(select(1))
            return jsonify({"ok": True, "service": "messageboard", "time": now().isoformat()})
        except SQLAlchemyError as e:
            return jsonify({"ok": False, "error": str(e)}), 500

    from auth import bp as auth_bp
    from messages import bp as messages_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(messages_bp)

    _ensure_admin(app, svc)
    return app
