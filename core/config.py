import os

from dotenv import load_dotenv


def _bool(val) -> bool:
    if isinstance(val, bool):
        return val
    return str(val or "").strip().lower() in ("1", "true", "yes", "on")


def _cfg(name: str, default: str | None = None) -> str:
    val = os.environ.get(name, default)
    if val is None:
        raise RuntimeError(f"Missing required setting: {name}")
    return val


def normalize_db_url(url: str) -> str:
    # PostgreSQL URL für SQLAlchemy (psycopg v3) normalisieren
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def load_config(overrides: dict | None = None) -> dict:
    """Liest die Einstellungen aus der Umgebung (.env wird vorher geladen)."""
    load_dotenv()

    is_production = _bool(
        os.environ.get("IS_PRODUCTION")
        or os.environ.get("RENDER")
        or os.environ.get("RENDER_SERVICE_ID")
    )

    cfg = {
        "IS_PRODUCTION": is_production,
        "SECRET_KEY": _cfg("SECRET_KEY", "dev"),
        "DATABASE_URL": _cfg("DATABASE_URL", "sqlite:///messageboard.db"),
        "BASE_URL": _cfg("BASE_URL", "" if is_production else "http://127.0.0.1:5000"),
        "LOG_LEVEL": os.environ.get("LOG_LEVEL", "INFO"),
        # Session (signiertes Cookie)
        "AUTH_COOKIE_NAME": os.environ.get("AUTH_COOKIE_NAME", "mb_session"),
        "SESSION_ISS": os.environ.get("SESSION_ISS", "messageboard"),
        "SESSION_AUD": os.environ.get("SESSION_AUD", "messageboard_client"),
        "SESSION_EXP_MINUTES": int(os.environ.get("SESSION_EXP_MINUTES", str(60 * 24))),
        # Mail-Token
        "MAIL_TOKEN_TTL_HOURS": int(os.environ.get("MAIL_TOKEN_TTL_HOURS", "24")),
        "REVEAL_UNKNOWN_EMAIL": _bool(os.environ.get("REVEAL_UNKNOWN_EMAIL", "false")),
        # argon2
        "ARGON2_TIME_COST": int(os.environ.get("ARGON2_TIME_COST", "2")),
        "ARGON2_MEMORY_COST": int(os.environ.get("ARGON2_MEMORY_COST", "102400")),
        "ARGON2_PARALLELISM": int(os.environ.get("ARGON2_PARALLELISM", "8")),
        # Mail (console | resend | postmark | smtp)
        "MAIL_PROVIDER": os.getenv("MAIL_PROVIDER", "console"),
        "MAIL_FROM": os.getenv("MAIL_FROM", "Messageboard <no-reply@localhost>"),
        "MAIL_REPLY_TO": os.getenv("MAIL_REPLY_TO", ""),
        "EMAILS_ENABLED": _bool(os.getenv("EMAILS_ENABLED", "true")),
        "RESEND_API_KEY": os.getenv("RESEND_API_KEY"),
        "POSTMARK_API_TOKEN": os.getenv("POSTMARK_API_TOKEN") or os.getenv("POSTMARK_TOKEN"),
        "POSTMARK_MESSAGE_STREAM": os.getenv("POSTMARK_MESSAGE_STREAM", "outbound"),
        "SMTP_HOST": os.getenv("SMTP_HOST"),
        "SMTP_PORT": int(os.getenv("SMTP_PORT", "587")),
        "SMTP_USER": os.getenv("SMTP_USER"),
        "SMTP_PASS": os.getenv("SMTP_PASS"),
        "SMTP_USE_TLS": _bool(os.getenv("SMTP_USE_TLS", "true")),
        # CORS
        "ALLOWED_ORIGINS": [
            o.strip()
            for o in os.getenv(
                "ALLOWED_ORIGINS", "http://localhost:5000,http://127.0.0.1:5000"
            ).split(",")
            if o.strip()
        ],
        # optionaler Bootstrap-Admin
        "ADMIN_EMAIL": os.getenv("ADMIN_EMAIL"),
        "ADMIN_PASSWORD": os.getenv("ADMIN_PASSWORD"),
    }

    if overrides:
        cfg.update(overrides)
    cfg["DATABASE_URL"] = normalize_db_url(cfg["DATABASE_URL"])
    return cfg
