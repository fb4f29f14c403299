"""Database models for threaded comments.

Comments form an adjacency list: ``parent_comment_id`` points at another
comment of the same post, or is null for a top-level comment.

- ``comments``: lookup by id.
- ``comments_by_post``: every comment of a post in creation order, the
  input of the thread builder.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from folio.utils.timestamps import as_utc, utc_now


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COMMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments (
    comment_id UUID PRIMARY KEY,
    post_id UUID,
    author_id UUID,
    parent_comment_id UUID,
    content TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

COMMENTS_BY_POST_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments_by_post (
    post_id UUID,
    created_at TIMESTAMP,
    comment_id UUID,
    author_id UUID,
    parent_comment_id UUID,
    content TEXT,
    updated_at TIMESTAMP,
    PRIMARY KEY ((post_id), created_at, comment_id)
) WITH CLUSTERING ORDER BY (created_at ASC, comment_id ASC)
"""

COMMENTS_TABLES_CQL = [
    COMMENTS_TABLE_CQL,
    COMMENTS_BY_POST_TABLE_CQL,
]


# ==============================================================================
# Entity
# ==============================================================================


@dataclass
class Comment:
    """A comment on a post."""

    id: UUID
    post_id: UUID
    author_id: UUID
    parent_comment_id: UUID | None
    content: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "Comment":
        """Create Comment from a ``comments`` or ``comments_by_post`` row."""
        return cls(
            id=row.comment_id,
            post_id=row.post_id,
            author_id=row.author_id,
            parent_comment_id=row.parent_comment_id,
            content=row.content,
            created_at=as_utc(row.created_at),
            updated_at=as_utc(row.updated_at or row.created_at),
        )


def create_comment(
    post_id: UUID,
    author_id: UUID,
    content: str,
    parent_comment_id: UUID | None = None,
) -> Comment:
    now = utc_now()
    return Comment(
        id=uuid4(),
        post_id=post_id,
        author_id=author_id,
        parent_comment_id=parent_comment_id,
        content=content,
        created_at=now,
        updated_at=now,
    )
