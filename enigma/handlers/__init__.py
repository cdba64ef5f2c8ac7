# =============================================================================
# File: enigma/handlers/__init__.py
# Description: Aggregates the HTTP and WebSocket route tables.
# =============================================================================

from aiohttp import web

from .api_handlers import routes as api_routes
from .socket_handler import routes as socket_routes


def setup_routes(app: web.Application) -> None:
    app.add_routes(api_routes)
    app.add_routes(socket_routes)
