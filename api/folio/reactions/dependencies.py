"""FastAPI dependencies for reactions."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import ReactionError, ReactionService


async def get_reaction_service(request: Request) -> ReactionService:
    service = getattr(request.app.state, "reaction_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Reaction service not available",
        )
    return service


ReactionServiceDep = Annotated[ReactionService, Depends(get_reaction_service)]


def handle_reaction_error(error: ReactionError) -> HTTPException:
    status_map = {
        "post_not_found": status.HTTP_404_NOT_FOUND,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=error.message,
    )
