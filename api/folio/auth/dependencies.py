"""FastAPI dependencies for authentication."""

from typing import Annotated

import structlog
from fastapi import Depends, HTTPException, Request, status
from jose import JWTError
from pydantic import ValidationError

from folio.auth.schemas import AuthUser
from folio.auth.security import decode_access_token
from folio.core.context import set_user_id


logger = structlog.get_logger(__name__)


def get_token_from_header(request: Request) -> str | None:
    """Extract the Bearer token from the Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


def _user_from_token(token: str) -> AuthUser:
    payload = decode_access_token(token)
    try:
        user = AuthUser.from_claims(payload)
    except ValidationError as e:
        msg = "Token subject is not a valid user id"
        raise JWTError(msg) from e
    set_user_id(user.id)
    return user


async def get_current_user(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> AuthUser:
    """Require an authenticated caller.

    Raises:
        HTTPException(401): If the token is missing, invalid or expired.
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return _user_from_token(token)
    except JWTError as e:
        logger.info("auth_token_rejected", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


async def get_current_user_optional(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> AuthUser | None:
    """Return the caller if a valid token was sent, otherwise None."""
    if not token:
        return None

    try:
        return _user_from_token(token)
    except JWTError:
        return None


CurrentUser = Annotated[AuthUser, Depends(get_current_user)]
OptionalUser = Annotated[AuthUser | None, Depends(get_current_user_optional)]
