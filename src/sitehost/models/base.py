from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return current UTC time as naive datetime (for TIMESTAMP columns).

    Database columns use TIMESTAMP WITHOUT TIME ZONE, so we strip tzinfo.
    All times are stored in UTC by convention.
    """
    return datetime.now(UTC).replace(tzinfo=None)


def utc_timestamp(value: datetime) -> float:
    """POSIX timestamp of a naive-UTC datetime (used as a sort score)."""
    return value.replace(tzinfo=UTC).timestamp()
