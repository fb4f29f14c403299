"""JWT verification for identity-provider access tokens.

Tokens are signed by the hosted identity provider with a shared secret
(HS256 by default) and carry ``sub`` (user id), ``email``, ``aud``
(``"authenticated"``) and a free-form ``user_metadata`` object.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from folio.config.settings import get_settings


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Mint a token shaped like the provider's.

    The API never issues tokens to clients; this exists for local
    development and tests.

    Args:
        data: Claims, at least ``{"sub": user_id}``.
        expires_delta: Token lifetime (default from settings).
    """
    settings = get_settings()

    now = datetime.now(UTC)
    to_encode = data.copy()
    to_encode.setdefault("aud", settings.auth_audience)
    to_encode.update(
        {
            "exp": now
            + (
                expires_delta
                or timedelta(minutes=settings.auth_access_token_expire_minutes)
            ),
            "iat": now,
        }
    )
    if to_encode["aud"] is None:
        del to_encode["aud"]

    return jwt.encode(
        to_encode,
        settings.auth_jwt_secret,
        algorithm=settings.auth_algorithm,
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Validates the signature, expiry, audience (when configured) and the
    presence of a subject.

    Raises:
        JWTError: If the token is invalid or expired.
    """
    settings = get_settings()

    options = {"verify_aud": settings.auth_audience is not None}
    payload = jwt.decode(
        token,
        settings.auth_jwt_secret,
        algorithms=[settings.auth_algorithm],
        audience=settings.auth_audience,
        options=options,
    )

    if not payload.get("sub"):
        msg = "Token missing subject claim"
        raise JWTError(msg)

    return payload
