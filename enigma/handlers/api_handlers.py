# enigma/handlers/api_handlers.py
import json
from typing import Type, TypeVar

from aiohttp import web
from loguru import logger
from pydantic import BaseModel, ValidationError

from enigma.services.errors import MalformedRequest
from enigma.utils.dependencies import get_deps
from enigma.utils.models import (
    ActivateRequest,
    CheckReputationRequest,
    RegisterIdentityRequest,
    SolveRequest,
)
from enigma.utils.network import client_address

routes = web.RouteTableDef()

ModelT = TypeVar("ModelT", bound=BaseModel)


def describe_validation_error(e: ValidationError) -> str:
    problems = []
    for err in e.errors():
        field = ".".join(str(part) for part in err.get("loc", ())) or "body"
        problems.append(f"{field}: {err.get('msg')}")
    return "; ".join(problems)


def parse_payload(payload: object, model: Type[ModelT]) -> ModelT:
    """Validates a decoded JSON payload, raising MalformedRequest on bad input."""
    if not isinstance(payload, dict):
        raise MalformedRequest("Request body must be a JSON object")
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise MalformedRequest(describe_validation_error(e)) from e


async def read_body(request: web.Request, model: Type[ModelT], allow_empty: bool = False) -> ModelT:
    if allow_empty and not request.can_read_body:
        return parse_payload({}, model)
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedRequest("Request body must be valid JSON") from e
    return parse_payload(payload, model)


@routes.get("/stats")
async def get_stats(request: web.Request) -> web.Response:
    snapshot = get_deps(request).counter_service.snapshot()
    return web.json_response(snapshot.to_payload())


@routes.post("/register-identity")
async def register_identity(request: web.Request) -> web.Response:
    body = await read_body(request, RegisterIdentityRequest)
    identity_id, is_new = await get_deps(request).identity_service.register(body.device_fingerprint)
    return web.json_response({"identityId": identity_id, "isNew": is_new})


@routes.post("/activate")
async def activate(request: web.Request) -> web.Response:
    body = await read_body(request, ActivateRequest)
    await get_deps(request).progress_service.activate(body.identity_id)
    return web.json_response({"success": True})


@routes.post("/solve")
async def solve(request: web.Request) -> web.Response:
    body = await read_body(request, SolveRequest)
    result = await get_deps(request).progress_service.solve(body.identity_id, body.level)
    return web.json_response({
        "success": True,
        "newDifficultyTier": int(result.tier),
        "tierChanged": result.tier_changed,
    })


@routes.post("/check-reputation")
async def check_reputation(request: web.Request) -> web.Response:
    """Ungated pre-check; without an address the caller's own one is checked."""
    body = await read_body(request, CheckReputationRequest, allow_empty=True)
    gate = get_deps(request).reputation_gate
    address = body.address or client_address(request, gate.trusted_proxies)
    if not address:
        raise MalformedRequest("address is required")

    decision = await gate.admit(address)
    response = {"isSuspicious": not decision.allowed}
    if decision.reason is not None:
        response["details"] = decision.reason.to_payload()
    logger.debug(f"Reputation pre-check for {address}: {response}")
    return web.json_response(response)


@routes.get("/health")
@routes.get("/healthz")
async def health(request: web.Request) -> web.Response:
    deps = get_deps(request)
    return web.json_response({
        "status": "healthy",
        "service": "enigma-gate",
        "sessions": deps.broadcast_service.session_count,
        "reputationCache": deps.reputation_cache.get_stats(),
    })


@routes.get("/ready")
async def ready(request: web.Request) -> web.Response:
    """Readiness probe: the backing store answers a ping."""
    try:
        await get_deps(request).redis.ping()
    except Exception as e:
        logger.warning(f"⚠️ Readiness check failed: {e!r}")
        return web.json_response({"status": "degraded", "store": "unreachable"}, status=503)
    return web.json_response({"status": "ready", "store": "ok"})
