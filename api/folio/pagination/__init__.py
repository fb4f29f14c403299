"""Keyset (cursor) pagination over timestamp-ordered rows."""

from folio.pagination.cursor import (
    Cursor,
    InvalidCursorError,
    decode_cursor,
    encode_cursor,
)
from folio.pagination.paginator import Page, RangeQuery, fetch_page


__all__ = [
    "Cursor",
    "InvalidCursorError",
    "Page",
    "RangeQuery",
    "decode_cursor",
    "encode_cursor",
    "fetch_page",
]
