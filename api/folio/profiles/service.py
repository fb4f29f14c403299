"""Profile service: lookup, auto-provisioning and updates."""

from collections.abc import Iterable
from typing import TYPE_CHECKING, Protocol
from uuid import UUID

import structlog

from folio.utils.timestamps import utc_now

from .models import Profile, profile_from_metadata
from .schemas import AuthorSummary, UpdateProfileRequest


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from folio.auth.schemas import AuthUser


logger = structlog.get_logger(__name__)

# Profile fields copied into author summaries
AUTHOR_FIELDS = frozenset({"username", "display_name", "avatar_url"})


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ProfileError(Exception):
    """Base profile error."""

    def __init__(self, message: str, code: str = "profile_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class ProfileNotFoundError(ProfileError):
    def __init__(self, message: str = "Profile not found"):
        super().__init__(message, "profile_not_found")


class UsernameTakenError(ProfileError):
    def __init__(self, message: str = "Username is already taken"):
        super().__init__(message, "username_taken")


class AuthorListener(Protocol):
    """Something that caches author summaries."""

    async def on_author_changed(self, user_id: UUID) -> None: ...


# ==============================================================================
# Profile Service
# ==============================================================================


class ProfileService:
    """Reads and writes author profiles."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._listeners: list[AuthorListener] = []
        self._prepare_statements()

    def register_listener(self, *listeners: AuthorListener) -> None:
        """Register services to notify when an author summary changes."""
        self._listeners.extend(listeners)

    def _prepare_statements(self) -> None:
        self._insert_profile = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.profiles
            (id, username, display_name, avatar_url, bio, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_profile = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.profiles WHERE id = ?
        """)

        self._get_profiles = self.session.prepare(f"""
            SELECT id, username, display_name, avatar_url
            FROM {self.keyspace}.profiles WHERE id IN ?
        """)

        self._get_username_owner = self.session.prepare(f"""
            SELECT user_id FROM {self.keyspace}.profiles_by_username
            WHERE username = ?
        """)

        self._claim_username = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.profiles_by_username (username, user_id)
            VALUES (?, ?)
        """)

        self._release_username = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.profiles_by_username WHERE username = ?
        """)

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_profile(self, user_id: UUID) -> Profile | None:
        result = await self.session.aexecute(self._get_profile, [user_id])
        row = result.one()
        return Profile.from_row(row) if row else None

    async def get_authors(self, user_ids: Iterable[UUID]) -> dict[UUID, AuthorSummary]:
        """Batch-load author summaries keyed by user id.

        Lookup failures degrade to an empty mapping; callers render the
        content without author details.
        """
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return {}

        try:
            rows = await self.session.aexecute(self._get_profiles, [ids])
        except Exception as e:
            logger.warning("author_lookup_failed", count=len(ids), error=str(e))
            return {}

        return {
            row.id: AuthorSummary(
                id=row.id,
                username=row.username,
                display_name=row.display_name,
                avatar_url=row.avatar_url,
            )
            for row in rows
        }

    # ==========================================================================
    # Writes
    # ==========================================================================

    async def _username_owner(self, username: str) -> UUID | None:
        result = await self.session.aexecute(
            self._get_username_owner, [username.lower()]
        )
        row = result.one()
        return row.user_id if row else None

    async def _save(self, profile: Profile) -> None:
        await self.session.aexecute(
            self._insert_profile,
            [
                profile.id,
                profile.username,
                profile.display_name,
                profile.avatar_url,
                profile.bio,
                profile.created_at,
                profile.updated_at,
            ],
        )

    async def ensure_profile_exists(self, user: "AuthUser") -> Profile:
        """Return the caller's profile, creating it from token metadata.

        A derived username that already belongs to someone else is dropped
        rather than failing the request that triggered provisioning.
        """
        existing = await self.get_profile(user.id)
        if existing:
            return existing

        profile = profile_from_metadata(user.id, user.email, user.user_metadata)

        if profile.username:
            owner = await self._username_owner(profile.username)
            if owner is not None and owner != user.id:
                logger.info(
                    "profile_username_conflict",
                    user_id=str(user.id),
                    username=profile.username,
                )
                profile.username = None
            else:
                await self.session.aexecute(
                    self._claim_username, [profile.username.lower(), user.id]
                )

        await self._save(profile)
        logger.info("profile_auto_created", user_id=str(user.id))
        return profile

    async def update_profile(
        self, user_id: UUID, data: UpdateProfileRequest
    ) -> Profile:
        """Apply a partial update to the caller's own profile.

        Raises:
            ProfileNotFoundError: If the profile does not exist.
            UsernameTakenError: If the new username belongs to another user.
        """
        profile = await self.get_profile(user_id)
        if not profile:
            raise ProfileNotFoundError

        changes = data.model_dump(exclude_unset=True)

        new_username = changes.get("username")
        if new_username and new_username != profile.username:
            owner = await self._username_owner(new_username)
            if owner is not None and owner != user_id:
                raise UsernameTakenError
            await self.session.aexecute(
                self._claim_username, [new_username.lower(), user_id]
            )
            if profile.username and profile.username.lower() != new_username.lower():
                await self.session.aexecute(
                    self._release_username, [profile.username.lower()]
                )
            profile.username = new_username

        if changes.get("display_name") is not None:
            profile.display_name = changes["display_name"]
        if "avatar_url" in changes:
            avatar_url = changes["avatar_url"]
            profile.avatar_url = str(avatar_url) if avatar_url else None
        if "bio" in changes:
            profile.bio = changes["bio"]

        profile.updated_at = utc_now()
        await self._save(profile)

        logger.info("profile_updated", user_id=str(user_id), fields=sorted(changes))

        if AUTHOR_FIELDS.intersection(changes):
            for listener in self._listeners:
                await listener.on_author_changed(user_id)

        return profile
