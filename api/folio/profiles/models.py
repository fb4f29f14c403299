"""Cassandra tables and entity for author profiles."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from folio.utils.timestamps import as_utc, utc_now


PROFILES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.profiles (
    id UUID PRIMARY KEY,
    username TEXT,
    display_name TEXT,
    avatar_url TEXT,
    bio TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

# Usernames are unique (case-insensitive); keyed by the lowercased name
PROFILES_BY_USERNAME_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.profiles_by_username (
    username TEXT PRIMARY KEY,
    user_id UUID
)
"""

PROFILES_TABLES_CQL = [
    PROFILES_TABLE_CQL,
    PROFILES_BY_USERNAME_TABLE_CQL,
]


@dataclass
class Profile:
    id: UUID
    username: str | None
    display_name: str | None
    avatar_url: str | None
    bio: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "Profile":
        return cls(
            id=row.id,
            username=row.username,
            display_name=row.display_name,
            avatar_url=row.avatar_url,
            bio=row.bio,
            created_at=as_utc(row.created_at),
            updated_at=as_utc(row.updated_at or row.created_at),
        )


def profile_from_metadata(
    user_id: UUID, email: str | None, metadata: dict[str, Any]
) -> Profile:
    """Build a first profile from identity-provider user metadata.

    OAuth providers fill ``user_name``/``preferred_username``, ``full_name``
    or ``name`` and ``avatar_url``. The e-mail local part is the last resort
    for a username.
    """
    email_prefix = email.split("@")[0] if email else None
    now = utc_now()
    return Profile(
        id=user_id,
        username=metadata.get("user_name")
        or metadata.get("preferred_username")
        or email_prefix
        or None,
        display_name=metadata.get("full_name") or metadata.get("name") or None,
        avatar_url=metadata.get("avatar_url") or None,
        bio=metadata.get("bio") or None,
        created_at=now,
        updated_at=now,
    )
