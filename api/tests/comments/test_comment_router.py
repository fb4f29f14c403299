"""Tests for comment endpoints."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from folio.comments.schemas import CommentResponse
from folio.comments.service import (
    CommentNotFoundError,
    InvalidParentError,
    PermissionDeniedError,
    PostNotPublishedError,
)


NOW = datetime(2024, 6, 1, tzinfo=UTC)


@pytest.fixture
def comment_service(app) -> Mock:
    service = Mock()
    app.state.comment_service = service
    return service


def sample_comment(author_id=None) -> CommentResponse:
    return CommentResponse(
        id=uuid4(),
        post_id=uuid4(),
        author_id=author_id or uuid4(),
        content="Hello",
        created_at=NOW,
        updated_at=NOW,
    )


class TestCreateCommentEndpoint:
    """Tests for POST /v1/comments."""

    def test_requires_authentication(self, client, comment_service):
        """Anonymous callers should get 401."""
        response = client.post(
            "/v1/comments", json={"post_id": str(uuid4()), "content": "Hi"}
        )

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_creates_comment(self, client, comment_service, auth_headers, user_id):
        """Should return 201 with the created comment."""
        created = sample_comment(author_id=user_id)
        comment_service.create_comment = AsyncMock(return_value=created)

        response = client.post(
            "/v1/comments",
            json={"post_id": str(created.post_id), "content": "Hello"},
            headers=auth_headers,
        )

        assert response.status_code == 201
        assert response.json()["id"] == str(created.id)

    def test_rejects_blank_content(self, client, comment_service, auth_headers):
        """Whitespace-only content should fail validation."""
        response = client.post(
            "/v1/comments",
            json={"post_id": str(uuid4()), "content": "   "},
            headers=auth_headers,
        )

        assert response.status_code == 422

    @pytest.mark.parametrize(
        ("error", "status_code"),
        [
            (PostNotPublishedError(), 409),
            (InvalidParentError(), 422),
            (CommentNotFoundError(), 404),
        ],
    )
    def test_maps_errors(self, client, comment_service, auth_headers, error, status_code):
        """Service errors should map to HTTP statuses."""
        comment_service.create_comment = AsyncMock(side_effect=error)

        response = client.post(
            "/v1/comments",
            json={"post_id": str(uuid4()), "content": "Hello"},
            headers=auth_headers,
        )

        assert response.status_code == status_code
        assert response.json()["message"] == error.message


class TestModifyCommentEndpoints:
    """Tests for PATCH and DELETE /v1/comments/{id}."""

    def test_update_forbidden(self, client, comment_service, auth_headers):
        """Editing someone else's comment should give 403."""
        comment_service.update_comment = AsyncMock(side_effect=PermissionDeniedError())

        response = client.patch(
            f"/v1/comments/{uuid4()}", json={"content": "x"}, headers=auth_headers
        )

        assert response.status_code == 403

    def test_delete(self, client, comment_service, auth_headers, user_id):
        """Deleting should pass the caller id to the service."""
        comment_id = uuid4()
        comment_service.delete_comment = AsyncMock(return_value=3)

        response = client.delete(f"/v1/comments/{comment_id}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"message": "Comment deleted"}
        comment_service.delete_comment.assert_awaited_once_with(comment_id, user_id)


class TestListCommentEndpoints:
    """Tests for the read endpoints."""

    def test_threaded_anonymous(self, client, comment_service):
        """Anonymous readers should be passed as viewer None."""
        post_id = uuid4()
        comment_service.get_threaded_comments = AsyncMock(return_value=[])

        response = client.get(f"/v1/comments/post/{post_id}")

        assert response.status_code == 200
        assert response.json() == []
        comment_service.get_threaded_comments.assert_awaited_once_with(post_id, None)

    def test_flat_with_viewer(self, client, comment_service, auth_headers, user_id):
        """Authenticated readers should be passed through."""
        post_id = uuid4()
        comment_service.get_comments = AsyncMock(return_value=[sample_comment()])

        response = client.get(f"/v1/comments/post/{post_id}/flat", headers=auth_headers)

        assert response.status_code == 200
        assert len(response.json()) == 1
        comment_service.get_comments.assert_awaited_once_with(post_id, user_id)

    def test_invalid_token_reads_as_anonymous(self, client, comment_service):
        """A bad token on a public read should not fail the request."""
        post_id = uuid4()
        comment_service.get_comments = AsyncMock(return_value=[])

        response = client.get(
            f"/v1/comments/post/{post_id}/flat",
            headers={"Authorization": "Bearer not-a-jwt"},
        )

        assert response.status_code == 200
        comment_service.get_comments.assert_awaited_once_with(post_id, None)

    def test_count(self, client, comment_service):
        """Should return the comment count."""
        post_id = uuid4()
        comment_service.get_comment_count = AsyncMock(return_value=4)

        response = client.get(f"/v1/comments/post/{post_id}/count")

        assert response.json() == {"post_id": str(post_id), "count": 4}
        comment_service.get_comment_count.assert_awaited_once_with(post_id, None)

    def test_service_unavailable(self, client):
        """Without a database the endpoints should answer 503."""
        response = client.get(f"/v1/comments/post/{uuid4()}/count")

        assert response.status_code == 503
