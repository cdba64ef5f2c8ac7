# enigma/middlewares/reputation_middleware.py
from typing import Awaitable, Callable

from aiohttp import web
from loguru import logger

from enigma.utils.dependencies import get_deps
from enigma.utils.network import client_address
from enigma.utils.responses import error_response

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

UNGATED_PATHS = frozenset({"/check-reputation", "/health", "/healthz", "/ready"})

BLOCKED_MESSAGE = (
    "VPN, proxy or Tor detected. For security reasons the challenge system "
    "cannot be accessed through these networks."
)


@web.middleware
async def reputation_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """
    Rejects suspicious clients before any handler runs.

    Every route except the ungated ones passes through here, including the
    WebSocket handshake, so no counter mutation bypasses the gate.
    """
    if request.path in UNGATED_PATHS:
        return await handler(request)

    gate = get_deps(request).reputation_gate
    address = client_address(request, gate.trusted_proxies)
    if address is None:
        logger.warning(f"⚠️ No client address for {request.method} {request.path}, admitting")
        return await handler(request)

    decision = await gate.admit(address)

    if not decision.allowed:
        signals = decision.reason
        return error_response(
            403,
            "Access blocked",
            BLOCKED_MESSAGE,
            details={
                "proxy": bool(signals and signals.proxy),
                "vpn": bool(signals and signals.vpn),
                "tor": bool(signals and signals.tor),
            },
        )

    return await handler(request)
