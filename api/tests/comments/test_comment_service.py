"""Tests for CommentService."""

import json
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest

from folio.auth.schemas import AuthUser
from folio.comments.schemas import CreateCommentRequest
from folio.comments.service import (
    CommentNotFoundError,
    CommentPostNotFoundError,
    CommentService,
    InvalidParentError,
    PermissionDeniedError,
    PostNotPublishedError,
)
from folio.posts.models import PostStatus, create_post
from folio.profiles.models import profile_from_metadata


BASE_TIME = datetime(2024, 6, 1, tzinfo=UTC)


def comment_row(
    post_id: UUID,
    author_id: UUID,
    parent: UUID | None = None,
    minutes: int = 0,
    comment_id: UUID | None = None,
) -> SimpleNamespace:
    created = BASE_TIME + timedelta(minutes=minutes)
    return SimpleNamespace(
        comment_id=comment_id or uuid4(),
        post_id=post_id,
        author_id=author_id,
        parent_comment_id=parent,
        content="A comment",
        created_at=created,
        updated_at=created,
    )


@pytest.fixture
def post_author() -> UUID:
    return uuid4()


@pytest.fixture
def published_post(post_author: UUID):
    return create_post(post_author, "Title", "Body", status=PostStatus.PUBLISHED)


@pytest.fixture
def draft_post(post_author: UUID):
    return create_post(post_author, "Title", "Body")


@pytest.fixture
def mock_posts(published_post) -> Mock:
    posts = Mock()
    posts.find_post = AsyncMock(return_value=published_post)
    return posts


@pytest.fixture
def mock_profiles() -> Mock:
    profiles = Mock()
    profiles.get_authors = AsyncMock(return_value={})
    profiles.ensure_profile_exists = AsyncMock(
        side_effect=lambda user: profile_from_metadata(
            user.id, user.email, user.user_metadata
        )
    )
    return profiles


@pytest.fixture
def comment_service(mock_session, mock_posts, mock_profiles, mock_redis) -> CommentService:
    return CommentService(
        session=mock_session,
        keyspace="test_keyspace",
        posts=mock_posts,
        profiles=mock_profiles,
        redis=mock_redis,
        cache_ttl=60,
    )


@pytest.fixture
def user(user_id: UUID) -> AuthUser:
    return AuthUser(id=user_id, email="reader@example.com")


class TestCreateComment:
    """Tests for create_comment."""

    @pytest.mark.asyncio
    async def test_creates_top_level_comment(
        self, comment_service, mock_session, mock_redis, user, published_post
    ):
        """Should dual-write the comment and invalidate the thread cache."""
        data = CreateCommentRequest(post_id=published_post.id, content="  Nice post  ")

        response = await comment_service.create_comment(user, data)

        assert response.content == "Nice post"
        assert response.author_id == user.id
        assert response.parent_comment_id is None
        assert response.author is not None
        assert response.author.username == "reader"
        assert mock_session.aexecute.call_count == 2
        mock_redis.delete.assert_awaited_once_with(
            f"comments:{published_post.id}:threads"
        )

    @pytest.mark.asyncio
    async def test_rejects_missing_post(self, comment_service, mock_posts, user):
        """Should raise when the post does not exist."""
        mock_posts.find_post.return_value = None

        with pytest.raises(CommentPostNotFoundError):
            await comment_service.create_comment(
                user, CreateCommentRequest(post_id=uuid4(), content="Hi")
            )

    @pytest.mark.asyncio
    async def test_rejects_draft_of_other_author(
        self, comment_service, mock_posts, draft_post, user
    ):
        """Someone else's draft should look like a missing post."""
        mock_posts.find_post.return_value = draft_post

        with pytest.raises(CommentPostNotFoundError):
            await comment_service.create_comment(
                user, CreateCommentRequest(post_id=draft_post.id, content="Hi")
            )

    @pytest.mark.asyncio
    async def test_rejects_own_draft(self, comment_service, mock_posts, draft_post):
        """Even the author cannot comment before publishing."""
        mock_posts.find_post.return_value = draft_post
        author = AuthUser(id=draft_post.author_id)

        with pytest.raises(PostNotPublishedError):
            await comment_service.create_comment(
                author, CreateCommentRequest(post_id=draft_post.id, content="Hi")
            )

    @pytest.mark.asyncio
    async def test_rejects_parent_from_other_post(
        self, comment_service, mock_session, make_result, published_post, user
    ):
        """A parent comment must belong to the same post."""
        parent = comment_row(post_id=uuid4(), author_id=uuid4())
        mock_session.aexecute.return_value = make_result(parent)

        with pytest.raises(InvalidParentError):
            await comment_service.create_comment(
                user,
                CreateCommentRequest(
                    post_id=published_post.id,
                    content="Reply",
                    parent_comment_id=parent.comment_id,
                ),
            )

    @pytest.mark.asyncio
    async def test_rejects_missing_parent(
        self, comment_service, published_post, user
    ):
        """A reply to a comment that does not exist should fail."""
        with pytest.raises(InvalidParentError):
            await comment_service.create_comment(
                user,
                CreateCommentRequest(
                    post_id=published_post.id,
                    content="Reply",
                    parent_comment_id=uuid4(),
                ),
            )

    @pytest.mark.asyncio
    async def test_creates_reply(
        self, comment_service, mock_session, make_result, published_post, user
    ):
        """A reply should keep its parent id."""
        parent = comment_row(post_id=published_post.id, author_id=uuid4())
        mock_session.aexecute.return_value = make_result(parent)

        response = await comment_service.create_comment(
            user,
            CreateCommentRequest(
                post_id=published_post.id,
                content="Reply",
                parent_comment_id=parent.comment_id,
            ),
        )

        assert response.parent_comment_id == parent.comment_id


class TestUpdateComment:
    """Tests for update_comment."""

    @pytest.mark.asyncio
    async def test_author_can_edit(
        self, comment_service, mock_session, make_result, user_id
    ):
        """Should rewrite the content and bump updated_at."""
        row = comment_row(post_id=uuid4(), author_id=user_id)
        mock_session.aexecute.return_value = make_result(row)

        response = await comment_service.update_comment(
            row.comment_id, user_id, "Edited"
        )

        assert response.content == "Edited"
        assert response.updated_at > response.created_at

    @pytest.mark.asyncio
    async def test_other_user_cannot_edit(
        self, comment_service, mock_session, make_result
    ):
        """Should raise PermissionDeniedError for non-authors."""
        row = comment_row(post_id=uuid4(), author_id=uuid4())
        mock_session.aexecute.return_value = make_result(row)

        with pytest.raises(PermissionDeniedError):
            await comment_service.update_comment(row.comment_id, uuid4(), "Edited")

    @pytest.mark.asyncio
    async def test_missing_comment(self, comment_service):
        """Should raise CommentNotFoundError."""
        with pytest.raises(CommentNotFoundError):
            await comment_service.update_comment(uuid4(), uuid4(), "Edited")


class TestDeleteComment:
    """Tests for delete_comment."""

    @pytest.mark.asyncio
    async def test_deletes_descendants(
        self, comment_service, mock_session, make_result, user_id, mock_redis
    ):
        """Deleting a comment should remove its whole reply subtree."""
        post_id = uuid4()
        a = comment_row(post_id, user_id, minutes=0)
        b = comment_row(post_id, uuid4(), parent=a.comment_id, minutes=1)
        c = comment_row(post_id, uuid4(), parent=b.comment_id, minutes=2)
        d = comment_row(post_id, uuid4(), minutes=3)

        mock_session.aexecute.side_effect = [
            make_result(a),
            make_result(a, b, c, d),
            *[make_result() for _ in range(6)],
        ]

        removed = await comment_service.delete_comment(a.comment_id, user_id)

        assert removed == 3
        assert mock_session.aexecute.call_count == 8
        mock_redis.delete.assert_awaited_once_with(f"comments:{post_id}:threads")

    @pytest.mark.asyncio
    async def test_other_user_cannot_delete(
        self, comment_service, mock_session, make_result
    ):
        """Should raise PermissionDeniedError for non-authors."""
        row = comment_row(post_id=uuid4(), author_id=uuid4())
        mock_session.aexecute.return_value = make_result(row)

        with pytest.raises(PermissionDeniedError):
            await comment_service.delete_comment(row.comment_id, uuid4())


class TestListings:
    """Tests for flat, threaded and count listings."""

    @pytest.mark.asyncio
    async def test_threaded_comments_nest_and_cache(
        self, comment_service, mock_session, make_result, mock_redis, published_post
    ):
        """A cache miss should build threads and store them."""
        a = comment_row(published_post.id, uuid4(), minutes=0)
        b = comment_row(published_post.id, uuid4(), parent=a.comment_id, minutes=1)
        mock_session.aexecute.return_value = make_result(a, b)

        threads = await comment_service.get_threaded_comments(published_post.id)

        assert [t.id for t in threads] == [a.comment_id]
        assert threads[0].replies[0].id == b.comment_id
        assert threads[0].replies[0].depth == 1
        mock_redis.setex.assert_awaited_once()
        key, ttl, _payload = mock_redis.setex.await_args.args
        assert key == f"comments:{published_post.id}:threads"
        assert ttl == 60

    @pytest.mark.asyncio
    async def test_threaded_comments_served_from_cache(
        self, comment_service, mock_session, mock_redis, published_post
    ):
        """A cache hit should skip the comment query."""
        cached = [
            {
                "id": str(uuid4()),
                "post_id": str(published_post.id),
                "author_id": str(uuid4()),
                "parent_comment_id": None,
                "content": "cached",
                "created_at": BASE_TIME.isoformat(),
                "updated_at": BASE_TIME.isoformat(),
                "author": None,
                "depth": 0,
                "replies": [],
            }
        ]
        mock_redis.get.return_value = json.dumps(cached)

        threads = await comment_service.get_threaded_comments(published_post.id)

        assert threads[0].content == "cached"
        mock_session.aexecute.assert_not_called()

    @pytest.mark.asyncio
    async def test_draft_threads_visible_to_author_only(
        self, comment_service, mock_posts, mock_session, make_result, draft_post, mock_redis
    ):
        """Draft comments are listed for the author and never cached."""
        mock_posts.find_post.return_value = draft_post
        row = comment_row(draft_post.id, draft_post.author_id)
        mock_session.aexecute.return_value = make_result(row)

        assert await comment_service.get_threaded_comments(draft_post.id, uuid4()) == []

        threads = await comment_service.get_threaded_comments(
            draft_post.id, draft_post.author_id
        )
        assert len(threads) == 1
        mock_redis.get.assert_not_awaited()
        mock_redis.setex.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_flat_comments_store_error_returns_empty(
        self, comment_service, mock_session, published_post
    ):
        """Store failures should resolve to an empty list."""
        mock_session.aexecute.side_effect = RuntimeError("timeout")

        assert await comment_service.get_comments(published_post.id) == []

    @pytest.mark.asyncio
    async def test_comment_count(self, comment_service, mock_session, make_result):
        """Should return the stored count."""
        mock_session.aexecute.return_value = make_result(SimpleNamespace(count=7))

        assert await comment_service.get_comment_count(uuid4()) == 7

    @pytest.mark.asyncio
    async def test_comment_count_error_is_zero(self, comment_service, mock_session):
        """Count errors should resolve to 0."""
        mock_session.aexecute.side_effect = RuntimeError("timeout")

        assert await comment_service.get_comment_count(uuid4()) == 0

    @pytest.mark.asyncio
    async def test_draft_count_visible_to_author_only(
        self, comment_service, mock_posts, mock_session, make_result, draft_post
    ):
        """Counts follow the same draft visibility as listings."""
        mock_posts.find_post.return_value = draft_post
        mock_session.aexecute.return_value = make_result(SimpleNamespace(count=3))

        assert await comment_service.get_comment_count(draft_post.id) == 0
        assert await comment_service.get_comment_count(draft_post.id, uuid4()) == 0
        assert (
            await comment_service.get_comment_count(draft_post.id, draft_post.author_id)
            == 3
        )
        mock_session.aexecute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_author_change_clears_cached_threads(
        self, comment_service, mock_redis
    ):
        """Every cached listing goes when an author summary changes."""
        first, second = str(uuid4()), str(uuid4())
        mock_redis.smembers.return_value = {first, second}

        await comment_service.on_author_changed(uuid4())

        deleted = mock_redis.delete.await_args.args
        assert set(deleted) == {
            f"comments:{first}:threads",
            f"comments:{second}:threads",
            CommentService.THREADS_INDEX_KEY,
        }
