"""Database model for post reactions.

One row per (post, user, reaction type). The whole partition of a post is
read to count reactions, and a user's own reactions are a clustering prefix
of it.
"""

from enum import Enum


class ReactionType(str, Enum):
    LIKE = "like"
    LOVE = "love"
    FIRE = "fire"


POST_REACTIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.post_reactions (
    post_id UUID,
    user_id UUID,
    reaction_type TEXT,
    created_at TIMESTAMP,
    PRIMARY KEY ((post_id), user_id, reaction_type)
)
"""

REACTIONS_TABLES_CQL = [
    POST_REACTIONS_TABLE_CQL,
]
