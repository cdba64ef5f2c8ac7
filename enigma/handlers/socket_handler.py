# enigma/handlers/socket_handler.py
import json
from typing import Any, Awaitable, Callable, Dict

from aiohttp import WSMsgType, web
from loguru import logger
from redis.exceptions import RedisError

from enigma.handlers.api_handlers import parse_payload
from enigma.services.broadcast_service import ERROR
from enigma.services.errors import EnigmaError, MalformedRequest
from enigma.utils.dependencies import Deps, get_deps
from enigma.utils.models import ActivateRequest, Session, SolveRequest

routes = web.RouteTableDef()

HEARTBEAT_SECONDS = 30.0

EventHandler = Callable[[Deps, Session, Dict[str, Any]], Awaitable[None]]


async def on_activation_event(deps: Deps, session: Session, data: Dict[str, Any]) -> None:
    body = parse_payload(data, ActivateRequest)
    await deps.progress_service.activate(body.identity_id)


async def on_solve_event(deps: Deps, session: Session, data: Dict[str, Any]) -> None:
    body = parse_payload(data, SolveRequest)
    await deps.progress_service.solve(body.identity_id, body.level)


EVENT_HANDLERS: Dict[str, EventHandler] = {
    "activation_event": on_activation_event,
    "solve_event": on_solve_event,
    # Names used by older clients
    "enigma_activated": on_activation_event,
    "enigma_solved": on_solve_event,
}


async def dispatch(deps: Deps, session: Session, raw: str) -> None:
    """Runs one client frame; failures are reported to that client only."""
    try:
        try:
            frame = json.loads(raw)
        except json.JSONDecodeError as e:
            raise MalformedRequest("Frame must be valid JSON") from e
        if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
            raise MalformedRequest("Frame must be an object with an 'event' name")

        handler = EVENT_HANDLERS.get(frame["event"])
        if handler is None:
            raise MalformedRequest(f"Unknown event '{frame['event']}'")

        await handler(deps, session, frame.get("data") or {})

    except EnigmaError as e:
        await deps.broadcast_service.emit(session, ERROR, {"error": e.code, "message": str(e)})
    except RedisError as e:
        logger.error(f"❌ Store unavailable while handling socket frame from {session.id}: {e!r}")
        await deps.broadcast_service.emit(
            session, ERROR, {"error": "store_unavailable", "message": "Backing store is unavailable"}
        )
    except Exception:
        logger.exception(f"❌ Unhandled error in socket frame from {session.id}")
        await deps.broadcast_service.emit(
            session, ERROR, {"error": "internal_error", "message": "Internal server error"}
        )


@routes.get("/ws")
async def websocket_handler(request: web.Request) -> web.WebSocketResponse:
    ws = web.WebSocketResponse(heartbeat=HEARTBEAT_SECONDS)
    await ws.prepare(request)

    deps = get_deps(request)
    broadcaster = deps.broadcast_service
    session = Session(transport=ws)

    try:
        await broadcaster.run_to_completion(broadcaster.on_connect(session))
        async for msg in ws:
            if msg.type == WSMsgType.TEXT:
                await dispatch(deps, session, msg.data)
            elif msg.type == WSMsgType.ERROR:
                logger.warning(f"⚠️ Socket {session.id} closed with error: {ws.exception()!r}")
    finally:
        # The handler task is cancelled when the peer disconnects
        await broadcaster.run_to_completion(broadcaster.on_disconnect(session))

    return ws
