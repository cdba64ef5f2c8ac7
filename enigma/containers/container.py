# enigma/containers/container.py
from dependency_injector import containers, providers
from redis.asyncio import Redis

from enigma.config.settings import Settings, settings
from enigma.services.broadcast_service import BroadcastService
from enigma.services.counter_service import CounterService
from enigma.services.identity_service import IdentityService
from enigma.services.progress_service import ProgressService
from enigma.services.reputation_cache import ReputationCache
from enigma.services.reputation_gate import ReputationGate
from enigma.services.reputation_provider import IPQualityScoreProvider
from enigma.utils.dependencies import Deps
from enigma.utils.http_client import HTTPClient


def reputation_gate_enabled(config: Settings) -> bool:
    """Checking needs both the feature flag and a provider key."""
    return config.reputation_check_enabled and config.reputation_api_key is not None


class Container(containers.DeclarativeContainer):
    config = providers.Object(settings)

    redis_client = providers.Singleton(
        Redis.from_url,
        url=config.provided.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_timeout=config.provided.redis.socket_timeout,
        socket_connect_timeout=config.provided.redis.socket_connect_timeout,
        socket_keepalive=True,
        health_check_interval=config.provided.redis.health_check_interval,
    )

    http_client = providers.Singleton(
        HTTPClient,
        total_timeout=config.provided.reputation.timeout_seconds,
    )

    reputation_provider = providers.Singleton(
        IPQualityScoreProvider,
        http_client=http_client,
        api_key=config.provided.reputation_api_key,
        config=config.provided.reputation,
    )

    reputation_cache = providers.Singleton(
        ReputationCache,
        provider=reputation_provider,
        config=config.provided.reputation,
    )

    reputation_gate = providers.Singleton(
        ReputationGate,
        cache=reputation_cache,
        trusted_networks=config.provided.reputation.trusted_networks,
        enabled=providers.Callable(reputation_gate_enabled, config),
        trusted_proxies=config.provided.reputation.trusted_proxies,
    )

    counter_service = providers.Singleton(
        CounterService,
        redis=redis_client,
        config=config.provided.counters,
    )

    broadcast_service = providers.Singleton(
        BroadcastService,
        counter_service=counter_service,
    )

    identity_service = providers.Singleton(
        IdentityService,
        redis_client=redis_client,
    )

    progress_service = providers.Singleton(
        ProgressService,
        identity_service=identity_service,
        counter_service=counter_service,
        broadcast_service=broadcast_service,
    )

    deps = providers.Singleton(
        Deps,
        redis=redis_client,
        reputation_cache=reputation_cache,
        reputation_gate=reputation_gate,
        counter_service=counter_service,
        broadcast_service=broadcast_service,
        identity_service=identity_service,
        progress_service=progress_service,
        http_client=http_client,
    )
