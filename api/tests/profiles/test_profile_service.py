"""Tests for profile provisioning and updates."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest
from pydantic import ValidationError

from folio.auth.schemas import AuthUser
from folio.profiles.models import profile_from_metadata
from folio.profiles.schemas import UpdateProfileRequest
from folio.profiles.service import (
    ProfileNotFoundError,
    ProfileService,
    UsernameTakenError,
)


def profile_row(profile) -> SimpleNamespace:
    return SimpleNamespace(**vars(profile))


@pytest.fixture
def profile_service(mock_session) -> ProfileService:
    return ProfileService(session=mock_session, keyspace="test_keyspace")


class TestProfileFromMetadata:
    """Tests for deriving a first profile from token metadata."""

    def test_provider_metadata(self):
        profile = profile_from_metadata(
            uuid4(),
            "ada@example.com",
            {"user_name": "ada", "full_name": "Ada L.", "avatar_url": "https://a/x.png"},
        )

        assert profile.username == "ada"
        assert profile.display_name == "Ada L."
        assert profile.avatar_url == "https://a/x.png"

    def test_fallbacks(self):
        """preferred_username and name are used when the primary keys are missing."""
        profile = profile_from_metadata(
            uuid4(), None, {"preferred_username": "ada_l", "name": "Ada"}
        )

        assert profile.username == "ada_l"
        assert profile.display_name == "Ada"

    def test_email_prefix(self):
        profile = profile_from_metadata(uuid4(), "ada@example.com", {})

        assert profile.username == "ada"
        assert profile.display_name is None

    def test_nothing_known(self):
        profile = profile_from_metadata(uuid4(), None, {})

        assert profile.username is None
        assert profile.created_at == profile.updated_at


class TestUpdateProfileRequest:
    def test_username_characters(self):
        with pytest.raises(ValidationError):
            UpdateProfileRequest(username="not valid!")

    def test_username_length(self):
        with pytest.raises(ValidationError):
            UpdateProfileRequest(username="ab")


class TestEnsureProfileExists:
    """Tests for ProfileService.ensure_profile_exists."""

    @pytest.mark.asyncio
    async def test_existing_profile(self, profile_service, mock_session, make_result):
        user_id = uuid4()
        existing = profile_from_metadata(user_id, "ada@example.com", {})
        mock_session.aexecute.return_value = make_result(profile_row(existing))

        profile = await profile_service.ensure_profile_exists(AuthUser(id=user_id))

        assert profile == existing
        assert mock_session.aexecute.await_count == 1

    @pytest.mark.asyncio
    async def test_creates_profile(self, profile_service, mock_session):
        """A missing profile is created and its username claimed."""
        user = AuthUser(id=uuid4(), email="Ada@example.com")

        profile = await profile_service.ensure_profile_exists(user)

        assert profile.id == user.id
        assert profile.username == "Ada"
        claim = mock_session.aexecute.await_args_list[2]
        assert claim.args[1] == ["ada", user.id]

    @pytest.mark.asyncio
    async def test_username_conflict_dropped(self, profile_service, make_result):
        """A derived username owned by someone else is left empty."""
        user = AuthUser(id=uuid4(), email="ada@example.com")
        profile_service.session.aexecute = AsyncMock(
            side_effect=[
                make_result(),
                make_result(SimpleNamespace(user_id=uuid4())),
                make_result(),
            ]
        )

        profile = await profile_service.ensure_profile_exists(user)

        assert profile.username is None


class TestUpdateProfile:
    """Tests for ProfileService.update_profile."""

    @pytest.mark.asyncio
    async def test_missing_profile(self, profile_service):
        with pytest.raises(ProfileNotFoundError):
            await profile_service.update_profile(uuid4(), UpdateProfileRequest(bio="hi"))

    @pytest.mark.asyncio
    async def test_username_taken(self, profile_service, make_result, user_id: UUID):
        existing = profile_from_metadata(user_id, "ada@example.com", {})
        profile_service.session.aexecute = AsyncMock(
            side_effect=[
                make_result(profile_row(existing)),
                make_result(SimpleNamespace(user_id=uuid4())),
            ]
        )

        with pytest.raises(UsernameTakenError):
            await profile_service.update_profile(
                user_id, UpdateProfileRequest(username="grace")
            )

    @pytest.mark.asyncio
    async def test_partial_update(self, profile_service, mock_session, make_result, user_id):
        """Only the fields sent are changed."""
        existing = profile_from_metadata(
            user_id, "ada@example.com", {"full_name": "Ada"}
        )
        mock_session.aexecute.return_value = make_result(profile_row(existing))

        profile = await profile_service.update_profile(
            user_id, UpdateProfileRequest(bio="Mathematician")
        )

        assert profile.bio == "Mathematician"
        assert profile.display_name == "Ada"
        assert profile.username == "ada"
        assert profile.updated_at >= existing.created_at

    @pytest.mark.asyncio
    async def test_author_change_notifies_listeners(
        self, profile_service, mock_session, make_result, user_id
    ):
        """Cached author summaries are dropped when the display name changes."""
        existing = profile_from_metadata(user_id, "ada@example.com", {})
        mock_session.aexecute.return_value = make_result(profile_row(existing))
        listener = Mock(on_author_changed=AsyncMock())
        profile_service.register_listener(listener)

        await profile_service.update_profile(
            user_id, UpdateProfileRequest(display_name="Ada Lovelace")
        )

        listener.on_author_changed.assert_awaited_once_with(user_id)

    @pytest.mark.asyncio
    async def test_bio_change_keeps_caches(
        self, profile_service, mock_session, make_result, user_id
    ):
        """Bio is not part of author summaries."""
        existing = profile_from_metadata(user_id, "ada@example.com", {})
        mock_session.aexecute.return_value = make_result(profile_row(existing))
        listener = Mock(on_author_changed=AsyncMock())
        profile_service.register_listener(listener)

        await profile_service.update_profile(user_id, UpdateProfileRequest(bio="Hi"))

        listener.on_author_changed.assert_not_awaited()
