from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc_naive(value: datetime) -> datetime:
    # SQLite devuelve fechas sin zona; se comparan todas como UTC "naive"
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def day_bounds(day: datetime):
    """Inicio (inclusive) y fin (exclusivo) del día UTC de ``day``."""
    start = day.astimezone(timezone.utc) if day.tzinfo else day.replace(tzinfo=timezone.utc)
    start = start.replace(hour=0, minute=0, second=0, microsecond=0)
    end = start.replace(hour=23, minute=59, second=59, microsecond=999999)
    return start, end
