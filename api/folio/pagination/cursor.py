"""Opaque pagination cursors.

A cursor marks the last row a client has seen as ``"{timestamp}_{id}"``,
where the timestamp is ISO 8601 in UTC with a ``Z`` suffix and the id is a UUID. Neither part
can contain an underscore, so splitting on the first one is unambiguous.
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from folio.utils.timestamps import as_utc


CURSOR_SEPARATOR = "_"


class InvalidCursorError(ValueError):
    """Raised when a cursor string cannot be decoded."""

    def __init__(self, cursor: str, reason: str) -> None:
        self.cursor = cursor
        self.reason = reason
        super().__init__(f"Invalid cursor {cursor!r}: {reason}")


@dataclass(frozen=True, order=True)
class Cursor:
    """Position ``(timestamp, id)`` of the last row of a page."""

    timestamp: datetime
    id: UUID


def encode_cursor(timestamp: datetime, row_id: UUID | str) -> str:
    # "Z" instead of "+00:00" keeps the cursor safe in an unencoded query string
    stamp = as_utc(timestamp).isoformat().replace("+00:00", "Z")
    return f"{stamp}{CURSOR_SEPARATOR}{row_id}"


def decode_cursor(cursor: str) -> Cursor:
    """Parse a cursor produced by :func:`encode_cursor`.

    Raises:
        InvalidCursorError: If either component is missing or malformed.
    """
    timestamp_part, separator, id_part = cursor.partition(CURSOR_SEPARATOR)
    if not separator or not timestamp_part or not id_part:
        raise InvalidCursorError(cursor, "expected '<timestamp>_<id>'")

    try:
        timestamp = datetime.fromisoformat(timestamp_part)
    except ValueError as e:
        raise InvalidCursorError(cursor, "bad timestamp") from e

    try:
        row_id = UUID(id_part)
    except ValueError as e:
        raise InvalidCursorError(cursor, "bad id") from e

    return Cursor(timestamp=as_utc(timestamp), id=row_id)
