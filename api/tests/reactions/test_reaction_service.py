"""Tests for ReactionService and reaction endpoints."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest

from folio.posts.models import PostStatus, create_post
from folio.reactions.models import ReactionType
from folio.reactions.schemas import ReactionCount
from folio.reactions.service import ReactionPostNotFoundError, ReactionService


def reaction(kind: str) -> SimpleNamespace:
    return SimpleNamespace(reaction_type=kind)


@pytest.fixture
def published_post():
    return create_post(uuid4(), "Title", "Body", status=PostStatus.PUBLISHED)


@pytest.fixture
def mock_posts(published_post) -> Mock:
    return Mock(find_post=AsyncMock(return_value=published_post))


@pytest.fixture
def reaction_service(mock_session, mock_posts) -> ReactionService:
    return ReactionService(session=mock_session, keyspace="test_keyspace", posts=mock_posts)


class TestReactionCounts:
    """Tests for get_post_reactions and get_user_reactions."""

    @pytest.mark.asyncio
    async def test_counts_per_type(self, reaction_service, mock_session, make_result):
        """Counts should group by type and omit unused types."""
        mock_session.aexecute.return_value = make_result(
            reaction("like"), reaction("fire"), reaction("like")
        )

        counts = await reaction_service.get_post_reactions(uuid4())

        assert sorted(counts, key=lambda c: c.reaction_type.value) == [
            ReactionCount(reaction_type=ReactionType.FIRE, count=1),
            ReactionCount(reaction_type=ReactionType.LIKE, count=2),
        ]

    @pytest.mark.asyncio
    async def test_counts_store_error(self, reaction_service, mock_session):
        """Store errors resolve to no counts."""
        mock_session.aexecute.side_effect = RuntimeError("down")

        assert await reaction_service.get_post_reactions(uuid4()) == []

    @pytest.mark.asyncio
    async def test_user_reactions_anonymous(self, reaction_service, mock_session):
        """Anonymous callers have no reactions and cause no query."""
        assert await reaction_service.get_user_reactions(uuid4(), None) == []
        mock_session.aexecute.assert_not_called()

    @pytest.mark.asyncio
    async def test_user_reactions(self, reaction_service, mock_session, make_result):
        """Should return the caller's reaction types."""
        mock_session.aexecute.return_value = make_result(reaction("love"))

        assert await reaction_service.get_user_reactions(uuid4(), uuid4()) == [
            ReactionType.LOVE
        ]


class TestToggleReaction:
    """Tests for toggle_reaction."""

    @pytest.mark.asyncio
    async def test_adds_missing_reaction(
        self, reaction_service, mock_session, published_post, user_id: UUID
    ):
        """A new reaction should be inserted."""
        active = await reaction_service.toggle_reaction(
            published_post.id, user_id, ReactionType.LIKE
        )

        assert active is True
        statement, params = mock_session.aexecute.await_args.args
        assert "INSERT INTO test_keyspace.post_reactions" in statement.query
        assert params[:3] == [published_post.id, user_id, "like"]

    @pytest.mark.asyncio
    async def test_removes_existing_reaction(
        self, reaction_service, mock_session, make_result, published_post, user_id: UUID
    ):
        """Toggling an existing reaction should delete it."""
        mock_session.aexecute.return_value = make_result(reaction("fire"))

        active = await reaction_service.toggle_reaction(
            published_post.id, user_id, ReactionType.FIRE
        )

        assert active is False
        statement, params = mock_session.aexecute.await_args.args
        assert "DELETE FROM test_keyspace.post_reactions" in statement.query
        assert params == [published_post.id, user_id, "fire"]

    @pytest.mark.asyncio
    async def test_hidden_post(self, reaction_service, mock_posts, user_id: UUID):
        """Reacting to someone else's draft looks like a missing post."""
        mock_posts.find_post.return_value = create_post(uuid4(), "t", "c")

        with pytest.raises(ReactionPostNotFoundError):
            await reaction_service.toggle_reaction(uuid4(), user_id, ReactionType.LIKE)


class TestReactionEndpoints:
    """Tests for /v1/reactions."""

    @pytest.fixture
    def service(self, app) -> Mock:
        service = Mock()
        app.state.reaction_service = service
        return service

    def test_get_reactions_anonymous(self, client, service):
        """Anonymous callers get counts and no own reactions."""
        post_id = uuid4()
        service.get_post_reactions = AsyncMock(
            return_value=[ReactionCount(reaction_type=ReactionType.LIKE, count=2)]
        )
        service.get_user_reactions = AsyncMock(return_value=[])

        response = client.get(f"/v1/reactions/post/{post_id}")

        assert response.status_code == 200
        assert response.json() == {
            "post_id": str(post_id),
            "counts": [{"reaction_type": "like", "count": 2}],
            "user_reactions": [],
        }
        service.get_user_reactions.assert_awaited_once_with(post_id, None)

    def test_toggle(self, client, service, auth_headers, user_id):
        """Toggling reports whether the reaction is now active."""
        post_id = uuid4()
        service.toggle_reaction = AsyncMock(return_value=True)

        response = client.post(
            f"/v1/reactions/post/{post_id}/toggle",
            json={"reaction_type": "love"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["active"] is True
        service.toggle_reaction.assert_awaited_once_with(post_id, user_id, ReactionType.LOVE)

    def test_toggle_unknown_type(self, client, service, auth_headers):
        """Only like, love and fire are accepted."""
        response = client.post(
            f"/v1/reactions/post/{uuid4()}/toggle",
            json={"reaction_type": "angry"},
            headers=auth_headers,
        )

        assert response.status_code == 422
