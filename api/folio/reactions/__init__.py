"""Emoji reactions on posts."""

from .models import REACTIONS_TABLES_CQL, ReactionType
from .service import ReactionService


__all__ = [
    "REACTIONS_TABLES_CQL",
    "ReactionService",
    "ReactionType",
]
