"""Read Master Forum API - application factory and lifespan."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from src.config import get_settings
from src.core.database import init_async_cassandra, shutdown_async_cassandra
from src.core.errors import register_exception_handlers
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import RequestContextMiddleware
from src.core.redis import init_redis, shutdown_redis
from src.forum.router import router as forum_router
from src.forum.service import ForumService
from src.health.router import router as health_router


if TYPE_CHECKING:
    from redis.asyncio import Redis

    from src.config.settings import Settings


# Logging must be configured before any module logger is used
settings = get_settings()
configure_structlog(settings)

logger = get_logger(__name__)


def build_forum_service(settings: "Settings", session: Any, redis: "Redis") -> ForumService:
    """Wire the forum service from settings and live storage clients."""
    return ForumService(
        session=session,
        keyspace=settings.cassandra_keyspace,
        redis=redis,
        max_reply_depth=settings.forum_max_reply_depth,
        reply_max_length=settings.forum_reply_max_length,
        replies_limit=settings.forum_replies_limit,
        list_scan_limit=settings.forum_list_scan_limit,
        cache_ttl=settings.forum_posts_cache_ttl,
        lock_timeout=settings.forum_reply_lock_timeout,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Connect storage on startup; the forum stays disabled without it.

    Forum routes answer 503 unless both Cassandra and Redis came up.
    """
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    app.state.forum_service = None
    redis_client = None
    session = None

    try:
        redis_client = await init_redis()
    except Exception as e:
        logger.warning("redis_init_skipped", error=str(e))

    try:
        session = await init_async_cassandra()
    except Exception as e:
        logger.warning("cassandra_init_skipped", error=str(e))

    if redis_client is not None and session is not None:
        app.state.forum_service = build_forum_service(settings, session, redis_client)
        logger.info("forum_service_initialized")
    else:
        logger.warning(
            "forum_service_disabled",
            redis=redis_client is not None,
            cassandra=session is not None,
        )

    yield

    logger.info("shutting_down_application")
    await shutdown_redis()
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    docs = settings.is_development

    # debug=False keeps Starlette from rendering stack traces
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Read Master forum discussion API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if docs else None,
        redoc_url="/redoc" if docs else None,
        openapi_url="/openapi.json" if docs else None,
    )

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

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(forum_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        return {
            "message": "Read Master Forum API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
