import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from models import Base


def create_db_engine(db_url: str) -> Engine:
    if db_url.startswith("sqlite"):
        # Tests / lokale Entwicklung
        return create_engine(
            db_url,
            pool_pre_ping=True,
            connect_args={"check_same_thread": False},
        )

    return create_engine(
        db_url,
        pool_pre_ping=True,     # prüft Verbindung vor Benutzung
        pool_recycle=180,       # recycelt Connections regelmäßig
        pool_timeout=30,
        pool_size=5,
        max_overflow=10,
        connect_args={
            "sslmode": os.getenv("PGSSLMODE", "require"),
        },
    )


def ensure_schema(engine: Engine) -> None:
    """Legt fehlende Tabellen an (idempotent)."""
    Base.metadata.create_all(engine)
