# enigma/core/app.py
"""
aiohttp application factory and lifecycle.

┌─────────────────────────────────────┐
│          web.Application            │
├─────────────────────────────────────┤
│  error_middleware                   │
│  reputation_middleware  (gate)      │
│  HTTP routes  +  /ws socket         │
│  lifecycle: hydrate / sweep / close │
└─────────────────────────────────────┘
"""
from typing import AsyncIterator

from aiohttp import web
from loguru import logger

from enigma.handlers import setup_routes
from enigma.middlewares.error_middleware import error_middleware
from enigma.middlewares.reputation_middleware import reputation_middleware
from enigma.utils.dependencies import DEPS_KEY, Deps


async def lifecycle(app: web.Application) -> AsyncIterator[None]:
    """Startup before `yield`, shutdown after. Store outages degrade, never abort."""
    deps = app[DEPS_KEY]
    logger.info("🔧 Initializing application components...")

    try:
        await deps.redis.ping()
        logger.info("✅ Redis connected")
    except Exception as e:
        logger.error(f"❌ Redis connection failed: {e!r}. Serving from memory")

    await deps.counter_service.hydrate()
    deps.reputation_cache.start()
    logger.info("✅ All components initialized successfully")

    yield

    logger.info("🛑 Shutting down application components...")
    await deps.broadcast_service.close_all()
    await deps.reputation_cache.stop()

    if deps.http_client is not None:
        try:
            await deps.http_client.close()
            logger.info("✅ HTTP client closed")
        except Exception as e:
            logger.error(f"Error closing HTTP client: {e}")

    try:
        await deps.redis.aclose()
        logger.info("✅ Redis client closed")
    except Exception as e:
        logger.error(f"Error closing Redis: {e}")


def create_app(deps: Deps) -> web.Application:
    app = web.Application(middlewares=[error_middleware, reputation_middleware])
    app[DEPS_KEY] = deps
    setup_routes(app)
    app.cleanup_ctx.append(lifecycle)
    return app
