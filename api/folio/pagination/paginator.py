"""Cursor paginator.

Rows are ordered by ``(order_column DESC, id DESC)``. A page asks the store
for ``limit + 1`` rows strictly after the cursor position; the extra row only
signals that another page exists and is never returned.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, Protocol, TypeVar

import structlog

from folio.pagination.cursor import (
    Cursor,
    InvalidCursorError,
    decode_cursor,
    encode_cursor,
)


logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 10


class RangeQuery(Protocol):
    """Ordered range query against the content store.

    Implementations return at most ``limit`` rows ordered by
    ``(order_column DESC, id DESC)``. When ``before`` is given only rows
    with ``order_column < before.timestamp`` or
    ``order_column == before.timestamp and id < before.id`` qualify.
    """

    async def __call__(
        self, order_column: str, before: Cursor | None, limit: int
    ) -> Sequence[Any]: ...


@dataclass
class Page(Generic[T]):
    data: list[T] = field(default_factory=list)
    next_cursor: str | None = None
    has_more: bool = False

    @classmethod
    def empty(cls) -> "Page[T]":
        return cls(data=[], next_cursor=None, has_more=False)


async def fetch_page(
    query: RangeQuery,
    order_column: str,
    cursor: str | None = None,
    limit: int = DEFAULT_PAGE_SIZE,
    *,
    id_column: str = "id",
) -> Page[Any]:
    """Fetch one page of rows.

    Args:
        query: Range query over the store.
        order_column: Timestamp attribute rows are ordered by.
        cursor: Cursor returned with the previous page, if any.
        limit: Page size; a non-positive limit yields an empty page.
        id_column: Row attribute used to break timestamp ties.

    Returns:
        The page. Store failures and malformed cursors yield an empty page.
    """
    if limit <= 0:
        return Page.empty()

    before: Cursor | None = None
    if cursor:
        try:
            before = decode_cursor(cursor)
        except InvalidCursorError as e:
            logger.warning("pagination_invalid_cursor", cursor=cursor, reason=e.reason)
            return Page.empty()

    try:
        rows = list(await query(order_column, before, limit + 1))
    except Exception:
        logger.exception(
            "pagination_query_failed", order_column=order_column, limit=limit
        )
        return Page.empty()

    if len(rows) <= limit:
        return Page(data=rows, next_cursor=None, has_more=False)

    rows = rows[:limit]
    last = rows[-1]
    return Page(
        data=rows,
        next_cursor=encode_cursor(
            getattr(last, order_column), getattr(last, id_column)
        ),
        has_more=True,
    )
