# enigma/middlewares/error_middleware.py
from typing import Awaitable, Callable

from aiohttp import web
from loguru import logger
from redis.exceptions import RedisError

from enigma.services.errors import EnigmaError
from enigma.utils.responses import error_response

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Maps service errors to JSON responses; nothing escapes as a crash."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except EnigmaError as e:
        if e.status >= 500:
            logger.error(f"❌ {request.method} {request.path}: {e}")
        return error_response(e.status, e.code, str(e))
    except RedisError as e:
        logger.error(f"❌ Store unavailable during {request.method} {request.path}: {e!r}")
        return error_response(503, "store_unavailable", "Backing store is unavailable, try again later")
    except Exception:
        logger.exception(f"❌ Unhandled error in {request.method} {request.path}")
        return error_response(500, "internal_error", "Internal server error")
