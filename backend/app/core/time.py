"""UTC timestamp helpers for row defaults and document dates."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Timezone-aware UTC now, used for ``created_at``/``updated_at`` defaults and status stamps."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Treat naive values as UTC (SQLite drops tzinfo on read); convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
