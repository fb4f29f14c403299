"""Reaction service: counts, per-user reactions and toggling."""

from collections import Counter
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from folio.utils.timestamps import utc_now

from .models import ReactionType
from .schemas import ReactionCount


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from folio.posts.service import PostService


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ReactionError(Exception):
    """Base reaction error."""

    def __init__(self, message: str, code: str = "reaction_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class ReactionPostNotFoundError(ReactionError):
    def __init__(self, message: str = "Post not found"):
        super().__init__(message, "post_not_found")


# ==============================================================================
# Reaction Service
# ==============================================================================


class ReactionService:
    """Reads and toggles reactions on posts."""

    def __init__(self, session: "Session", keyspace: str, posts: "PostService"):
        self.session = session
        self.keyspace = keyspace
        self.posts = posts
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._get_post_reactions = self.session.prepare(f"""
            SELECT reaction_type FROM {self.keyspace}.post_reactions
            WHERE post_id = ?
        """)

        self._get_user_reactions = self.session.prepare(f"""
            SELECT reaction_type FROM {self.keyspace}.post_reactions
            WHERE post_id = ? AND user_id = ?
        """)

        self._get_reaction = self.session.prepare(f"""
            SELECT reaction_type FROM {self.keyspace}.post_reactions
            WHERE post_id = ? AND user_id = ? AND reaction_type = ?
        """)

        self._insert_reaction = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.post_reactions
            (post_id, user_id, reaction_type, created_at)
            VALUES (?, ?, ?, ?)
        """)

        self._delete_reaction = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.post_reactions
            WHERE post_id = ? AND user_id = ? AND reaction_type = ?
        """)

        self._delete_post_reactions = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.post_reactions WHERE post_id = ?
        """)

    async def get_post_reactions(self, post_id: UUID) -> list[ReactionCount]:
        """Count reactions per type; types nobody used are left out.

        Store errors resolve to an empty list.
        """
        try:
            rows = await self.session.aexecute(self._get_post_reactions, [post_id])
        except Exception as e:
            logger.warning("reaction_count_failed", post_id=str(post_id), error=str(e))
            return []

        counts = Counter(row.reaction_type for row in rows)
        return [
            ReactionCount(reaction_type=ReactionType(reaction_type), count=count)
            for reaction_type, count in counts.items()
        ]

    async def get_user_reactions(
        self, post_id: UUID, user_id: UUID | None
    ) -> list[ReactionType]:
        if user_id is None:
            return []

        try:
            rows = await self.session.aexecute(
                self._get_user_reactions, [post_id, user_id]
            )
        except Exception as e:
            logger.warning(
                "user_reactions_failed",
                post_id=str(post_id),
                user_id=str(user_id),
                error=str(e),
            )
            return []

        return [ReactionType(row.reaction_type) for row in rows]

    async def toggle_reaction(
        self, post_id: UUID, user_id: UUID, reaction_type: ReactionType
    ) -> bool:
        """Add the reaction, or remove it if the user already reacted.

        Returns:
            True if the reaction is now present, False if it was removed.

        Raises:
            ReactionPostNotFoundError: If the post does not exist or the
                user cannot see it.
        """
        post = await self.posts.find_post(post_id)
        if post is None or not post.is_visible_to(user_id):
            raise ReactionPostNotFoundError

        params = [post_id, user_id, reaction_type.value]
        result = await self.session.aexecute(self._get_reaction, params)

        if result.one():
            await self.session.aexecute(self._delete_reaction, params)
            active = False
        else:
            await self.session.aexecute(self._insert_reaction, [*params, utc_now()])
            active = True

        logger.info(
            "reaction_toggled",
            post_id=str(post_id),
            reaction_type=reaction_type.value,
            active=active,
        )
        return active

    async def delete_for_post(self, post_id: UUID) -> None:
        await self.session.aexecute(self._delete_post_reactions, [post_id])
        logger.info("post_reactions_deleted", post_id=str(post_id))
