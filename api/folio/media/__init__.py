"""Media attached to posts.

Note: Router is not exported here to avoid circular imports.
Import directly from folio.media.router when needed.
"""

from .models import MEDIA_TABLES_CQL, MediaType, PostMedia
from .service import MediaService


__all__ = [
    "MEDIA_TABLES_CQL",
    "MediaService",
    "MediaType",
    "PostMedia",
]
