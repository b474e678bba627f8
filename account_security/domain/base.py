from datetime import UTC, datetime


def utcnow() -> datetime:
    """Naive UTC timestamp; SQLite drops tzinfo, so every stored datetime is naive."""
    return datetime.now(UTC).replace(tzinfo=None)
