"""Threaded comments on posts.

Note: Router is not exported here to avoid circular imports.
Import directly from folio.comments.router when needed.
"""

from .models import COMMENTS_TABLES_CQL, Comment
from .service import CommentService
from .threads import CommentThread, build_threads


__all__ = [
    "COMMENTS_TABLES_CQL",
    "Comment",
    "CommentService",
    "CommentThread",
    "build_threads",
]
