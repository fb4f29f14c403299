"""UTC timestamp helpers.

Cassandra stores timestamps with millisecond precision and the driver hands
them back as naive datetimes in UTC. Values produced here already match what
a read returns, so cursors built from freshly written rows stay valid.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Current UTC time truncated to milliseconds."""
    now = datetime.now(UTC)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
