"""Comment system service layer.

Business logic for:
- Comment CRUD on published posts, author-only mutation
- Flat and threaded listings with author info
- Cascading deletes (replies of a deleted comment, all comments of a post)
- Redis cache of threaded listings
"""

import json
from collections import defaultdict, deque
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from folio.profiles.schemas import AuthorSummary
from folio.utils.timestamps import utc_now

from .models import Comment, create_comment
from .schemas import (
    CommentResponse,
    CommentThreadResponse,
    CreateCommentRequest,
    threads_to_response,
)
from .threads import build_threads, count_nodes


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from redis.asyncio import Redis

    from folio.auth.schemas import AuthUser
    from folio.posts.models import Post
    from folio.posts.service import PostService
    from folio.profiles.service import ProfileService


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CommentError(Exception):
    """Base comment error."""

    def __init__(self, message: str, code: str = "comment_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CommentNotFoundError(CommentError):
    def __init__(self, message: str = "Comment not found"):
        super().__init__(message, "comment_not_found")


class CommentPostNotFoundError(CommentError):
    def __init__(self, message: str = "Post not found"):
        super().__init__(message, "post_not_found")


class PostNotPublishedError(CommentError):
    def __init__(self, message: str = "Comments are only allowed on published posts"):
        super().__init__(message, "post_not_published")


class InvalidParentError(CommentError):
    def __init__(self, message: str = "Parent comment not found on this post"):
        super().__init__(message, "invalid_parent")


class PermissionDeniedError(CommentError):
    def __init__(self, message: str = "You can only modify your own comments"):
        super().__init__(message, "permission_denied")


# ==============================================================================
# Comment Service
# ==============================================================================


class CommentService:
    """Service for comment management."""

    # Set of post ids whose threaded listing is cached
    THREADS_INDEX_KEY = "comments:threads:cached"

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        posts: "PostService",
        profiles: "ProfileService",
        redis: "Redis | None" = None,
        cache_ttl: int = 3600,
    ):
        """Initialize with Cassandra session and optional Redis."""
        self.session = session
        self.keyspace = keyspace
        self.posts = posts
        self.profiles = profiles
        self.redis = redis
        self.cache_ttl = cache_ttl
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._insert_comment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comments
            (comment_id, post_id, author_id, parent_comment_id, content, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_comment_by_post = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comments_by_post
            (post_id, created_at, comment_id, author_id, parent_comment_id, content, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_comment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments WHERE comment_id = ?
        """)

        self._get_comments_by_post = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments_by_post
            WHERE post_id = ?
        """)

        self._count_comments_by_post = self.session.prepare(f"""
            SELECT COUNT(*) FROM {self.keyspace}.comments_by_post
            WHERE post_id = ?
        """)

        self._delete_comment = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.comments WHERE comment_id = ?
        """)

        self._delete_comment_by_post = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.comments_by_post
            WHERE post_id = ? AND created_at = ? AND comment_id = ?
        """)

        self._delete_post_comments = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.comments_by_post WHERE post_id = ?
        """)

    # ==========================================================================
    # Lookups
    # ==========================================================================

    async def find_comment(self, comment_id: UUID) -> Comment | None:
        result = await self.session.aexecute(self._get_comment, [comment_id])
        row = result.one()
        return Comment.from_row(row) if row else None

    async def _load_post_comments(self, post_id: UUID) -> list[Comment]:
        """All comments of a post, oldest first."""
        rows = await self.session.aexecute(self._get_comments_by_post, [post_id])
        return [Comment.from_row(row) for row in rows]

    async def _get_owned_comment(self, comment_id: UUID, user_id: UUID) -> Comment:
        comment = await self.find_comment(comment_id)
        if not comment:
            raise CommentNotFoundError
        if comment.author_id != user_id:
            raise PermissionDeniedError
        return comment

    async def _visible_post(self, post_id: UUID, viewer_id: UUID | None) -> "Post | None":
        post = await self.posts.find_post(post_id)
        if post is None or not post.is_visible_to(viewer_id):
            return None
        return post

    # ==========================================================================
    # Comment CRUD
    # ==========================================================================

    async def _write_comment(self, comment: Comment) -> None:
        """Dual-write to the lookup table and the per-post listing."""
        await self.session.aexecute(
            self._insert_comment,
            [
                comment.id,
                comment.post_id,
                comment.author_id,
                comment.parent_comment_id,
                comment.content,
                comment.created_at,
                comment.updated_at,
            ],
        )
        await self.session.aexecute(
            self._insert_comment_by_post,
            [
                comment.post_id,
                comment.created_at,
                comment.id,
                comment.author_id,
                comment.parent_comment_id,
                comment.content,
                comment.updated_at,
            ],
        )

    async def create_comment(
        self, user: "AuthUser", data: CreateCommentRequest
    ) -> CommentResponse:
        """Create a comment or reply.

        Raises:
            CommentPostNotFoundError: If the post is missing or invisible.
            PostNotPublishedError: If the post is a draft.
            InvalidParentError: If the parent is not a comment of this post.
        """
        post = await self._visible_post(data.post_id, user.id)
        if post is None:
            raise CommentPostNotFoundError
        if not post.is_published:
            raise PostNotPublishedError

        if data.parent_comment_id is not None:
            parent = await self.find_comment(data.parent_comment_id)
            if parent is None or parent.post_id != data.post_id:
                raise InvalidParentError

        profile = await self.profiles.ensure_profile_exists(user)

        comment = create_comment(
            post_id=data.post_id,
            author_id=user.id,
            content=data.content,
            parent_comment_id=data.parent_comment_id,
        )
        await self._write_comment(comment)
        await self._invalidate_cache(data.post_id)

        logger.info(
            "comment_created",
            comment_id=str(comment.id),
            post_id=str(comment.post_id),
            is_reply=comment.parent_comment_id is not None,
        )

        return CommentResponse.from_comment(comment, AuthorSummary.from_profile(profile))

    async def update_comment(
        self, comment_id: UUID, user_id: UUID, content: str
    ) -> CommentResponse:
        """Edit a comment's content and bump ``updated_at``.

        Raises:
            CommentNotFoundError: If the comment does not exist.
            PermissionDeniedError: If ``user_id`` is not the author.
        """
        comment = await self._get_owned_comment(comment_id, user_id)
        comment.content = content
        comment.updated_at = utc_now()

        # Same primary keys, so the inserts overwrite in place
        await self._write_comment(comment)
        await self._invalidate_cache(comment.post_id)

        logger.info("comment_updated", comment_id=str(comment_id))

        authors = await self.profiles.get_authors([comment.author_id])
        return CommentResponse.from_comment(comment, authors.get(comment.author_id))

    async def delete_comment(self, comment_id: UUID, user_id: UUID) -> int:
        """Delete a comment and every reply beneath it.

        Returns:
            Number of comments removed.

        Raises:
            CommentNotFoundError: If the comment does not exist.
            PermissionDeniedError: If ``user_id`` is not the author.
        """
        comment = await self._get_owned_comment(comment_id, user_id)

        siblings = await self._load_post_comments(comment.post_id)
        children: dict[UUID, list[Comment]] = defaultdict(list)
        for other in siblings:
            if other.parent_comment_id is not None:
                children[other.parent_comment_id].append(other)

        doomed = [comment]
        queue = deque([comment.id])
        seen = {comment.id}
        while queue:
            for child in children.get(queue.popleft(), []):
                if child.id not in seen:
                    seen.add(child.id)
                    doomed.append(child)
                    queue.append(child.id)

        for target in doomed:
            await self.session.aexecute(
                self._delete_comment_by_post,
                [target.post_id, target.created_at, target.id],
            )
            await self.session.aexecute(self._delete_comment, [target.id])

        await self._invalidate_cache(comment.post_id)

        logger.info(
            "comment_deleted",
            comment_id=str(comment_id),
            post_id=str(comment.post_id),
            removed=len(doomed),
        )
        return len(doomed)

    async def delete_for_post(self, post_id: UUID) -> None:
        """Remove every comment of a post (post deletion cascade)."""
        comments = await self._load_post_comments(post_id)
        for comment in comments:
            await self.session.aexecute(self._delete_comment, [comment.id])
        await self.session.aexecute(self._delete_post_comments, [post_id])
        await self._invalidate_cache(post_id)

        logger.info("post_comments_deleted", post_id=str(post_id), count=len(comments))

    # ==========================================================================
    # Listings
    # ==========================================================================

    async def _list_with_authors(self, post_id: UUID) -> list[CommentResponse]:
        comments = await self._load_post_comments(post_id)
        authors = await self.profiles.get_authors(c.author_id for c in comments)
        return [CommentResponse.from_comment(c, authors.get(c.author_id)) for c in comments]

    async def get_comments(
        self, post_id: UUID, viewer_id: UUID | None = None
    ) -> list[CommentResponse]:
        """Flat list of a post's comments, oldest first, with authors.

        Comments of a draft are only listed for the post's author. Store
        failures resolve to an empty list.
        """
        try:
            post = await self._visible_post(post_id, viewer_id)
            if post is None:
                return []
            return await self._list_with_authors(post_id)
        except Exception:
            logger.exception("comments_fetch_failed", post_id=str(post_id))
            return []

    async def get_threaded_comments(
        self, post_id: UUID, viewer_id: UUID | None = None
    ) -> list[CommentThreadResponse]:
        """A post's comments arranged as reply threads.

        Threads of published posts are the same for every viewer and are
        served from the cache when present.
        """
        try:
            post = await self._visible_post(post_id, viewer_id)
            if post is None:
                return []

            if post.is_published:
                cached = await self._get_cached_threads(post_id)
                if cached is not None:
                    return cached

            flat = await self._list_with_authors(post_id)
        except Exception:
            logger.exception("comments_fetch_failed", post_id=str(post_id))
            return []

        forest = build_threads(flat)
        logger.debug(
            "comment_threads_built",
            post_id=str(post_id),
            roots=len(forest),
            comments=count_nodes(forest),
        )

        threads = threads_to_response(forest)
        if post.is_published:
            await self._cache_threads(post_id, threads)
        return threads

    async def get_comment_count(
        self, post_id: UUID, viewer_id: UUID | None = None
    ) -> int:
        """Number of comments on a post the viewer may see; errors resolve to 0."""
        try:
            post = await self._visible_post(post_id, viewer_id)
            if post is None:
                return 0
            result = await self.session.aexecute(self._count_comments_by_post, [post_id])
            row = result.one()
        except Exception:
            logger.exception("comment_count_failed", post_id=str(post_id))
            return 0
        return row.count if row else 0

    # ==========================================================================
    # Cache Management
    # ==========================================================================

    @staticmethod
    def _cache_key(post_id: UUID | str) -> str:
        return f"comments:{post_id}:threads"

    async def _get_cached_threads(self, post_id: UUID) -> list[CommentThreadResponse] | None:
        if not self.redis:
            return None

        try:
            cached = await self.redis.get(self._cache_key(post_id))
        except Exception as e:
            logger.warning("comment_cache_read_failed", error=str(e))
            return None

        if cached:
            return [CommentThreadResponse(**item) for item in json.loads(cached)]
        return None

    async def _cache_threads(
        self, post_id: UUID, threads: list[CommentThreadResponse]
    ) -> None:
        if not self.redis:
            return

        payload = [thread.model_dump(mode="json") for thread in threads]
        try:
            await self.redis.setex(self._cache_key(post_id), self.cache_ttl, json.dumps(payload))
            await self.redis.sadd(self.THREADS_INDEX_KEY, str(post_id))
            await self.redis.expire(self.THREADS_INDEX_KEY, self.cache_ttl)
        except Exception as e:
            logger.warning("comment_cache_write_failed", error=str(e))

    async def _invalidate_cache(self, post_id: UUID) -> None:
        if not self.redis:
            return

        try:
            await self.redis.delete(self._cache_key(post_id))
        except Exception as e:
            logger.warning("comment_cache_invalidate_failed", error=str(e))

    async def on_author_changed(self, user_id: UUID) -> None:
        """Drop every cached thread listing.

        Listings embed author summaries and the commenter may appear under
        any post, so all cached listings go.
        """
        if not self.redis:
            return

        try:
            post_ids = await self.redis.smembers(self.THREADS_INDEX_KEY)
            keys = [self._cache_key(post_id) for post_id in post_ids]
            await self.redis.delete(*keys, self.THREADS_INDEX_KEY)
        except Exception as e:
            logger.warning(
                "comment_cache_invalidate_failed", user_id=str(user_id), error=str(e)
            )
            return

        logger.debug("comment_cache_cleared", user_id=str(user_id), posts=len(keys))
