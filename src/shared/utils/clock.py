"""UTC timestamps for the commerce core.

SQL providers hand back naive datetimes for columns written as UTC, so
comparisons against stored timestamps go through ``as_utc``.
"""

from datetime import UTC, datetime


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)
