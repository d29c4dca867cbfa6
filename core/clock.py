from datetime import datetime, timezone


def now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc_aware(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_db_utc_naive(dt: datetime) -> datetime:
    return as_utc_aware(dt).replace(tzinfo=None)


def utcnow_naive() -> datetime:
    # Default für DateTime-Spalten (DB speichert naive UTC)
    return to_db_utc_naive(now())
