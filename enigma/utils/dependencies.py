# enigma/utils/dependencies.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from aiohttp import web
from redis.asyncio import Redis

from enigma.services.broadcast_service import BroadcastService
from enigma.services.counter_service import CounterService
from enigma.services.identity_service import IdentityService
from enigma.services.progress_service import ProgressService
from enigma.services.reputation_cache import ReputationCache
from enigma.services.reputation_gate import ReputationGate
from enigma.utils.http_client import HTTPClient


@dataclass
class Deps:
    """
    Component graph handed to the aiohttp application.
    Built once at startup by the DI container; handlers never use globals.
    """
    redis: Redis
    reputation_cache: ReputationCache
    reputation_gate: ReputationGate
    counter_service: CounterService
    broadcast_service: BroadcastService
    identity_service: IdentityService
    progress_service: ProgressService
    http_client: Optional[HTTPClient] = None


DEPS_KEY = web.AppKey("deps", Deps)


def get_deps(request: web.Request) -> Deps:
    return request.app[DEPS_KEY]
