"""FastAPI application factory.

create_app() returns a configured FastAPI instance. Lifespan manages
startup/shutdown: logging, Redis, and on the way out waiting for
in-flight background work before the engine is disposed.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from myreference import __version__
from myreference.api import api_router
from myreference.background import background_tasks
from myreference.config import settings
from myreference.errors import register_exception_handlers
from myreference.log_config import configure_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info(
        "myreference.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    from myreference.cache import close_redis, init_redis
    try:
        await init_redis()
        logger.info("myreference.redis_connected", url=settings.redis_url)
    except Exception as e:
        # Redis only backs rate limiting; serve without it.
        logger.warning("myreference.redis_unavailable", error=str(e))

    yield

    logger.info("myreference.shutdown", pending_tasks=len(background_tasks))
    await background_tasks.wait(timeout=settings.shutdown_grace_seconds)

    await close_redis()

    from myreference.db.engine import engine
    await engine.dispose()
    logger.info("myreference.stopped")


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    configure_logging()

    app = FastAPI(
        title="MyReference API",
        description="Reference records with token authentication and permissions",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RateLimit → Security → RequestId → handler

    from myreference.middleware.rate_limit import RateLimitMiddleware
    from myreference.middleware.request_id import RequestIdMiddleware
    from myreference.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        enabled=settings.rate_limit_enabled,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["OPTIONS", "GET", "POST", "PUT", "PATCH", "DELETE"],
            allow_headers=["Authorization", "Content-Type"],
        )

    register_exception_handlers(app)
    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: myreference.main:app)
app = create_app()
