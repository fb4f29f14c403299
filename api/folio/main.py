"""Folio API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from folio.comments.router import router as comments_router
from folio.comments.service import CommentService
from folio.config import get_settings
from folio.core.context import get_request_id
from folio.core.database import init_async_cassandra, shutdown_async_cassandra
from folio.core.logging import configure_structlog, get_logger
from folio.core.middleware import RequestContextMiddleware
from folio.core.rate_limit import SlidingWindowRateLimiter
from folio.core.redis import init_redis, shutdown_redis
from folio.health.router import router as health_router
from folio.media.router import router as media_router
from folio.media.service import MediaService
from folio.posts.router import router as posts_router
from folio.posts.service import PostService
from folio.profiles.router import router as profiles_router
from folio.profiles.service import ProfileService
from folio.reactions.router import router as reactions_router
from folio.reactions.service import ReactionService
from folio.storage.dependencies import get_storage_service
from folio.storage.router import router as storage_router


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Redis is optional: without it there is no caching and no rate limiting
    redis_client = None
    try:
        redis_client = await init_redis()
        logger.info("redis_initialized")
    except Exception as e:
        logger.warning(
            "redis_init_skipped",
            error=str(e),
            message="Running without Redis - caching and rate limiting disabled",
        )

    if redis_client is not None and settings.rate_limit_enabled:
        app.state.rate_limiter = SlidingWindowRateLimiter(
            redis_client,
            requests=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
            prefix=settings.rate_limit_prefix,
        )
        logger.info(
            "rate_limiter_initialized",
            requests=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )

    try:
        session = await init_async_cassandra()
        keyspace = settings.cassandra_keyspace

        profile_service = ProfileService(session=session, keyspace=keyspace)
        post_service = PostService(
            session=session,
            keyspace=keyspace,
            profiles=profile_service,
            redis=redis_client,
            cache_ttl=settings.cache_ttl_seconds,
        )
        comment_service = CommentService(
            session=session,
            keyspace=keyspace,
            posts=post_service,
            profiles=profile_service,
            redis=redis_client,
            cache_ttl=settings.cache_ttl_seconds,
        )
        reaction_service = ReactionService(
            session=session, keyspace=keyspace, posts=post_service
        )
        media_service = MediaService(
            session=session,
            keyspace=keyspace,
            posts=post_service,
            storage=get_storage_service(settings),
        )

        # Deleting a post removes everything hanging off it
        post_service.register_cleanup(comment_service, reaction_service, media_service)
        # Cached listings embed author summaries
        profile_service.register_listener(post_service, comment_service)

        app.state.profile_service = profile_service
        app.state.post_service = post_service
        app.state.comment_service = comment_service
        app.state.reaction_service = reaction_service
        app.state.media_service = media_service
        logger.info("services_initialized", keyspace=keyspace)
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await shutdown_redis()
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # debug stays False so Starlette never renders stack traces; the handlers
    # below log details and return safe messages.
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Folio API - posts, threaded comments, reactions and media",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": str(exc.detail)
                if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
                else "Internal server error",
                "status_code": exc.status_code,
                "request_id": request_id,
            },
            # Keeps WWW-Authenticate and X-RateLimit-* headers
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        request_id = _get_request_id_safe(request)

        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "message": "Validation error",
                "status_code": 422,
                "request_id": request_id,
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler; details are logged, never returned."""
        request_id = _get_request_id_safe(request)

        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "message": "An unexpected error occurred. Please try again later.",
                "status_code": 500,
                "request_id": request_id,
            },
        )

    app.include_router(health_router)
    app.include_router(profiles_router)
    app.include_router(posts_router)
    app.include_router(comments_router)
    app.include_router(reactions_router)
    app.include_router(media_router)
    app.include_router(storage_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        return {
            "message": "Folio API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
