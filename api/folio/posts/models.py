"""Cassandra tables and entity for posts.

``posts`` is the source of truth keyed by id. Two denormalized copies serve
the paginated listings, each clustered so the keyset cursor maps onto a
clustering slice:

- ``posts_by_status``: public feed, newest ``created_at`` first.
- ``posts_by_author``: an author's own posts, latest ``updated_at`` first.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from folio.utils.timestamps import as_utc, utc_now


class PostCategory(str, Enum):
    POST = "post"
    BLOG = "blog"
    DISCUSSION = "discussion"


class PostStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

POSTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.posts (
    post_id UUID PRIMARY KEY,
    author_id UUID,
    title TEXT,
    content TEXT,
    category TEXT,
    status TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

POSTS_BY_STATUS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.posts_by_status (
    status TEXT,
    created_at TIMESTAMP,
    post_id UUID,
    author_id UUID,
    title TEXT,
    content TEXT,
    category TEXT,
    updated_at TIMESTAMP,
    PRIMARY KEY ((status), created_at, post_id)
) WITH CLUSTERING ORDER BY (created_at DESC, post_id DESC)
"""

POSTS_BY_AUTHOR_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.posts_by_author (
    author_id UUID,
    updated_at TIMESTAMP,
    post_id UUID,
    title TEXT,
    content TEXT,
    category TEXT,
    status TEXT,
    created_at TIMESTAMP,
    PRIMARY KEY ((author_id), updated_at, post_id)
) WITH CLUSTERING ORDER BY (updated_at DESC, post_id DESC)
"""

POSTS_TABLES_CQL = [
    POSTS_TABLE_CQL,
    POSTS_BY_STATUS_TABLE_CQL,
    POSTS_BY_AUTHOR_TABLE_CQL,
]


# ==============================================================================
# Entity
# ==============================================================================


@dataclass
class Post:
    id: UUID
    author_id: UUID
    title: str
    content: str
    category: PostCategory
    status: PostStatus
    created_at: datetime
    updated_at: datetime

    @property
    def is_published(self) -> bool:
        return self.status == PostStatus.PUBLISHED

    def is_visible_to(self, viewer_id: UUID | None) -> bool:
        """Published posts are public; drafts are visible to their author."""
        return self.is_published or (
            viewer_id is not None and viewer_id == self.author_id
        )

    @classmethod
    def from_row(cls, row: Any) -> "Post":
        """Create a Post from a row of any of the three post tables."""
        return cls(
            id=row.post_id,
            author_id=row.author_id,
            title=row.title,
            content=row.content,
            category=PostCategory(row.category or PostCategory.POST.value),
            status=PostStatus(row.status or PostStatus.DRAFT.value),
            created_at=as_utc(row.created_at),
            updated_at=as_utc(row.updated_at or row.created_at),
        )


def create_post(
    author_id: UUID,
    title: str,
    content: str,
    category: PostCategory = PostCategory.POST,
    status: PostStatus = PostStatus.DRAFT,
) -> Post:
    now = utc_now()
    return Post(
        id=uuid4(),
        author_id=author_id,
        title=title,
        content=content,
        category=category,
        status=status,
        created_at=now,
        updated_at=now,
    )
