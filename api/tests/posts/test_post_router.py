"""Tests for post endpoints."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from folio.pagination import Cursor, decode_cursor, encode_cursor
from folio.posts.models import PostStatus, create_post
from folio.posts.schemas import PostListResponse
from folio.posts.service import PostNotFoundError, PostPermissionDeniedError


@pytest.fixture
def post_service(app) -> Mock:
    service = Mock()
    app.state.post_service = service
    return service


class TestFeedEndpoints:
    """Tests for GET /v1/posts and /v1/posts/me."""

    def test_feed_defaults_limit(self, client, post_service):
        """Omitted limit should use the configured default."""
        post_service.get_posts = AsyncMock(return_value=PostListResponse())

        response = client.get("/v1/posts")

        assert response.status_code == 200
        assert response.json() == {"data": [], "next_cursor": None, "has_more": False}
        post_service.get_posts.assert_awaited_once_with(cursor=None, limit=10)

    def test_feed_passes_cursor(self, client, post_service):
        """The cursor query parameter should reach the service."""
        post_service.get_posts = AsyncMock(return_value=PostListResponse())

        client.get("/v1/posts", params={"cursor": "abc", "limit": 5})

        post_service.get_posts.assert_awaited_once_with(cursor="abc", limit=5)

    def test_feed_cursor_survives_unencoded_url(self, client, post_service):
        """A next_cursor pasted into the URL as-is should decode unchanged."""
        created_at = datetime(2024, 1, 1, 0, 2, tzinfo=UTC)
        post_id = uuid4()
        next_cursor = encode_cursor(created_at, post_id)
        post_service.get_posts = AsyncMock(return_value=PostListResponse())

        response = client.get(f"/v1/posts?cursor={next_cursor}&limit=1")

        assert response.status_code == 200
        received = post_service.get_posts.await_args.kwargs["cursor"]
        assert received == next_cursor
        assert decode_cursor(received) == Cursor(created_at, post_id)

    def test_feed_limit_above_max(self, client, post_service):
        """Limits above the maximum should be rejected."""
        response = client.get("/v1/posts", params={"limit": 51})

        assert response.status_code == 422

    def test_my_posts_anonymous(self, client, post_service):
        """Anonymous callers reach the service as None."""
        post_service.get_my_posts = AsyncMock(return_value=PostListResponse())

        response = client.get("/v1/posts/me")

        assert response.status_code == 200
        post_service.get_my_posts.assert_awaited_once_with(None, cursor=None, limit=10)


class TestPostMutations:
    """Tests for create, update, delete and publish."""

    def test_create_requires_auth(self, client, post_service):
        """Creating a post needs a token."""
        response = client.post("/v1/posts", json={"title": "t", "content": "c"})

        assert response.status_code == 401

    def test_create(self, client, post_service, auth_headers, user_id):
        """Should return the created draft."""
        post = create_post(user_id, "Title", "Body")
        post_service.create_post = AsyncMock(return_value=post)

        response = client.post(
            "/v1/posts", json={"title": "Title", "content": "Body"}, headers=auth_headers
        )

        assert response.status_code == 201
        body = response.json()
        assert body["id"] == str(post.id)
        assert body["status"] == "draft"
        assert body["category"] == "post"

    def test_create_rejects_long_title(self, client, post_service, auth_headers):
        """Titles are limited to 200 characters."""
        response = client.post(
            "/v1/posts", json={"title": "x" * 201, "content": "Body"}, headers=auth_headers
        )

        assert response.status_code == 422

    def test_update_forbidden(self, client, post_service, auth_headers):
        """Non-authors get 403."""
        post_service.update_post = AsyncMock(side_effect=PostPermissionDeniedError())

        response = client.patch(
            f"/v1/posts/{uuid4()}", json={"title": "New"}, headers=auth_headers
        )

        assert response.status_code == 403

    def test_publish(self, client, post_service, auth_headers, user_id):
        """Publishing returns the published post."""
        post = create_post(user_id, "Title", "Body", status=PostStatus.PUBLISHED)
        post_service.publish_post = AsyncMock(return_value=post)

        response = client.post(f"/v1/posts/{post.id}/publish", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "published"
        post_service.publish_post.assert_awaited_once_with(post.id, user_id)

    def test_delete_missing(self, client, post_service, auth_headers):
        """Deleting a missing post gives 404."""
        post_service.delete_post = AsyncMock(side_effect=PostNotFoundError())

        response = client.delete(f"/v1/posts/{uuid4()}", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["message"] == "Post not found"

    def test_get_post_not_found(self, client, post_service):
        """Hidden drafts answer 404."""
        post_service.get_post = AsyncMock(side_effect=PostNotFoundError())

        response = client.get(f"/v1/posts/{uuid4()}")

        assert response.status_code == 404
