# enigma/utils/responses.py
from typing import Any, Dict, Optional

from aiohttp import web


def error_response(
    status: int,
    error: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> web.Response:
    body: Dict[str, Any] = {"error": error, "message": message}
    if details is not None:
        body["details"] = details
    return web.json_response(body, status=status)
