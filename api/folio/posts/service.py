"""Post service layer.

Business logic for:
- Post CRUD with author-only mutation
- Draft/published visibility
- Public feed and "my posts" listings through the cursor paginator
- Cascading deletes to comments, reactions and media
"""

import json
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol
from uuid import UUID

import structlog

from folio.pagination import Cursor, Page, fetch_page
from folio.utils.timestamps import utc_now

from .models import Post, PostStatus, create_post
from .schemas import CreatePostRequest, PostListResponse, PostResponse, UpdatePostRequest


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from redis.asyncio import Redis

    from folio.auth.schemas import AuthUser
    from folio.profiles.service import ProfileService


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class PostError(Exception):
    """Base post error."""

    def __init__(self, message: str, code: str = "post_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class PostNotFoundError(PostError):
    """Post does not exist or is not visible to the caller."""

    def __init__(self, message: str = "Post not found"):
        super().__init__(message, "post_not_found")


class PostPermissionDeniedError(PostError):
    def __init__(self, message: str = "You can only modify your own posts"):
        super().__init__(message, "permission_denied")


class PostCleanup(Protocol):
    """Something that owns rows hanging off a post."""

    async def delete_for_post(self, post_id: UUID) -> None: ...


# ==============================================================================
# Post Service
# ==============================================================================


class PostService:
    """Service for posts and post listings."""

    FEED_CACHE_KEY = "posts:feed:first"

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        profiles: "ProfileService",
        redis: "Redis | None" = None,
        cache_ttl: int = 3600,
    ):
        self.session = session
        self.keyspace = keyspace
        self.profiles = profiles
        self.redis = redis
        self.cache_ttl = cache_ttl
        self._cleanups: list[PostCleanup] = []
        self._prepare_statements()

    def register_cleanup(self, *cleanups: PostCleanup) -> None:
        """Register services whose rows must go when a post is deleted."""
        self._cleanups.extend(cleanups)

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._insert_post = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.posts
            (post_id, author_id, title, content, category, status, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_post_by_status = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.posts_by_status
            (status, created_at, post_id, author_id, title, content, category, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_post_by_author = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.posts_by_author
            (author_id, updated_at, post_id, title, content, category, status, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_post = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.posts WHERE post_id = ?
        """)

        self._delete_post = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.posts WHERE post_id = ?
        """)

        self._delete_post_by_status = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.posts_by_status
            WHERE status = ? AND created_at = ? AND post_id = ?
        """)

        self._delete_post_by_author = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.posts_by_author
            WHERE author_id = ? AND updated_at = ? AND post_id = ?
        """)

        # Listings: first page and keyset continuation
        self._get_feed = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.posts_by_status
            WHERE status = ?
            LIMIT ?
        """)

        self._get_feed_before = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.posts_by_status
            WHERE status = ? AND (created_at, post_id) < (?, ?)
            LIMIT ?
        """)

        self._get_by_author = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.posts_by_author
            WHERE author_id = ?
            LIMIT ?
        """)

        self._get_by_author_before = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.posts_by_author
            WHERE author_id = ? AND (updated_at, post_id) < (?, ?)
            LIMIT ?
        """)

    # ==========================================================================
    # Row writes
    # ==========================================================================

    async def _write_post(self, post: Post) -> None:
        """Write the post to the main table and both listing tables."""
        await self.session.aexecute(
            self._insert_post,
            [
                post.id,
                post.author_id,
                post.title,
                post.content,
                post.category.value,
                post.status.value,
                post.created_at,
                post.updated_at,
            ],
        )
        await self.session.aexecute(
            self._insert_post_by_status,
            [
                post.status.value,
                post.created_at,
                post.id,
                post.author_id,
                post.title,
                post.content,
                post.category.value,
                post.updated_at,
            ],
        )
        await self.session.aexecute(
            self._insert_post_by_author,
            [
                post.author_id,
                post.updated_at,
                post.id,
                post.title,
                post.content,
                post.category.value,
                post.status.value,
                post.created_at,
            ],
        )

    async def _delete_listing_rows(self, post: Post) -> None:
        await self.session.aexecute(
            self._delete_post_by_status,
            [post.status.value, post.created_at, post.id],
        )
        await self.session.aexecute(
            self._delete_post_by_author,
            [post.author_id, post.updated_at, post.id],
        )

    # ==========================================================================
    # Post CRUD
    # ==========================================================================

    async def find_post(self, post_id: UUID) -> Post | None:
        """Load a post regardless of visibility."""
        result = await self.session.aexecute(self._get_post, [post_id])
        row = result.one()
        return Post.from_row(row) if row else None

    async def _get_owned_post(self, post_id: UUID, user_id: UUID) -> Post:
        post = await self.find_post(post_id)
        if not post:
            raise PostNotFoundError
        if post.author_id != user_id:
            raise PostPermissionDeniedError
        return post

    async def create_post(self, user: "AuthUser", data: CreatePostRequest) -> Post:
        """Create a post for ``user``, provisioning their profile first."""
        await self.profiles.ensure_profile_exists(user)

        post = create_post(
            author_id=user.id,
            title=data.title,
            content=data.content,
            category=data.category,
            status=data.status,
        )
        await self._write_post(post)

        if post.is_published:
            await self._invalidate_feed_cache()

        logger.info(
            "post_created",
            post_id=str(post.id),
            status=post.status.value,
            category=post.category.value,
        )
        return post

    async def update_post(
        self, post_id: UUID, user_id: UUID, data: UpdatePostRequest
    ) -> Post:
        """Apply a partial update and bump ``updated_at``.

        Listing rows are keyed by status and updated_at, so the old rows are
        removed before the new ones are written.

        Raises:
            PostNotFoundError: If the post does not exist.
            PostPermissionDeniedError: If ``user_id`` is not the author.
        """
        post = await self._get_owned_post(post_id, user_id)
        was_published = post.is_published

        await self._delete_listing_rows(post)

        if data.title is not None:
            post.title = data.title
        if data.content is not None:
            post.content = data.content
        if data.category is not None:
            post.category = data.category
        if data.status is not None:
            post.status = data.status
        post.updated_at = utc_now()

        await self._write_post(post)

        if was_published or post.is_published:
            await self._invalidate_feed_cache()

        logger.info(
            "post_updated",
            post_id=str(post_id),
            fields=sorted(data.model_dump(exclude_none=True)),
        )
        return post

    async def publish_post(self, post_id: UUID, user_id: UUID) -> Post:
        return await self.update_post(
            post_id, user_id, UpdatePostRequest(status=PostStatus.PUBLISHED)
        )

    async def unpublish_post(self, post_id: UUID, user_id: UUID) -> Post:
        return await self.update_post(
            post_id, user_id, UpdatePostRequest(status=PostStatus.DRAFT)
        )

    async def delete_post(self, post_id: UUID, user_id: UUID) -> None:
        """Delete a post and everything attached to it.

        Raises:
            PostNotFoundError: If the post does not exist.
            PostPermissionDeniedError: If ``user_id`` is not the author.
        """
        post = await self._get_owned_post(post_id, user_id)

        for cleanup in self._cleanups:
            await cleanup.delete_for_post(post_id)

        await self._delete_listing_rows(post)
        await self.session.aexecute(self._delete_post, [post_id])

        if post.is_published:
            await self._invalidate_feed_cache()

        logger.info("post_deleted", post_id=str(post_id))

    async def get_post(self, post_id: UUID, viewer_id: UUID | None = None) -> PostResponse:
        """Get a post with its author.

        Raises:
            PostNotFoundError: If missing, or a draft the viewer does not own.
        """
        post = await self.find_post(post_id)
        if not post or not post.is_visible_to(viewer_id):
            raise PostNotFoundError

        authors = await self.profiles.get_authors([post.author_id])
        return PostResponse.from_post(post, authors.get(post.author_id))

    # ==========================================================================
    # Listings
    # ==========================================================================

    async def _query_feed(
        self, order_column: str, before: Cursor | None, limit: int
    ) -> Sequence[Post]:
        if before is None:
            rows = await self.session.aexecute(
                self._get_feed, [PostStatus.PUBLISHED.value, limit]
            )
        else:
            rows = await self.session.aexecute(
                self._get_feed_before,
                [PostStatus.PUBLISHED.value, before.timestamp, before.id, limit],
            )
        return [Post.from_row(row) for row in rows]

    def _author_query(self, author_id: UUID):
        async def query(
            order_column: str, before: Cursor | None, limit: int
        ) -> Sequence[Post]:
            if before is None:
                rows = await self.session.aexecute(
                    self._get_by_author, [author_id, limit]
                )
            else:
                rows = await self.session.aexecute(
                    self._get_by_author_before,
                    [author_id, before.timestamp, before.id, limit],
                )
            return [Post.from_row(row) for row in rows]

        return query

    async def _with_authors(self, page: Page[Post]) -> PostListResponse:
        authors = await self.profiles.get_authors(post.author_id for post in page.data)
        return PostListResponse(
            data=[PostResponse.from_post(p, authors.get(p.author_id)) for p in page.data],
            next_cursor=page.next_cursor,
            has_more=page.has_more,
        )

    async def get_posts(self, cursor: str | None = None, limit: int = 10) -> PostListResponse:
        """Public feed of published posts, newest first."""
        if not cursor:
            cached = await self._get_cached_feed(limit)
            if cached:
                return cached

        page = await fetch_page(self._query_feed, "created_at", cursor, limit)
        response = await self._with_authors(page)

        # Empty pages are not cached; a store failure also yields one
        if not cursor and page.data:
            await self._cache_feed(limit, response)
        return response

    async def get_my_posts(
        self, user_id: UUID | None, cursor: str | None = None, limit: int = 10
    ) -> PostListResponse:
        """The caller's posts (drafts included), most recently updated first."""
        if user_id is None:
            return PostListResponse()

        page = await fetch_page(self._author_query(user_id), "updated_at", cursor, limit)
        return await self._with_authors(page)

    # ==========================================================================
    # Cache Management
    # ==========================================================================

    async def _get_cached_feed(self, limit: int) -> PostListResponse | None:
        if not self.redis:
            return None

        try:
            cached = await self.redis.hget(self.FEED_CACHE_KEY, str(limit))
        except Exception as e:
            logger.warning("feed_cache_read_failed", error=str(e))
            return None

        if cached:
            return PostListResponse(**json.loads(cached))
        return None

    async def _cache_feed(self, limit: int, response: PostListResponse) -> None:
        if not self.redis:
            return

        payload: dict[str, Any] = response.model_dump(mode="json")
        try:
            await self.redis.hset(
                self.FEED_CACHE_KEY, str(limit), json.dumps(payload)
            )
            await self.redis.expire(self.FEED_CACHE_KEY, self.cache_ttl)
        except Exception as e:
            logger.warning("feed_cache_write_failed", error=str(e))

    async def _invalidate_feed_cache(self) -> None:
        if not self.redis:
            return

        try:
            await self.redis.delete(self.FEED_CACHE_KEY)
        except Exception as e:
            logger.warning("feed_cache_invalidate_failed", error=str(e))

    async def on_author_changed(self, user_id: UUID) -> None:
        """The cached feed page embeds author summaries; drop it."""
        await self._invalidate_feed_cache()
