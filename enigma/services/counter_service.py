# enigma/services/counter_service.py
import asyncio
from typing import Callable

from loguru import logger
from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from enigma.config.models import CounterServiceConfig
from enigma.services.difficulty import tier_for
from enigma.services.errors import PersistenceWriteFailure
from enigma.utils.keys import KeyFactory
from enigma.utils.models import CounterSnapshot, DifficultyTier, SolveResult

_PERSISTED_FIELDS = frozenset(CounterSnapshot().to_payload())


class CounterService:
    """
    Sole mutator of the progress counters.

    The in-memory snapshot is authoritative. Every mutation runs under one
    asyncio.Lock covering the read-modify-write and the write to Redis, so
    concurrent HTTP handlers and socket events never lose an update and
    snapshots reach the store in mutation order.
    """

    def __init__(self, redis: Redis, config: CounterServiceConfig):
        self.redis = redis
        self.config = config
        self.keys = KeyFactory

        self._lock = asyncio.Lock()
        self._snapshot = CounterSnapshot()
        self._tier = tier_for(0)

        logger.info("✅ CounterService initialized.")

    def snapshot(self) -> CounterSnapshot:
        return self._snapshot

    def current_tier(self) -> DifficultyTier:
        return self._tier

    async def hydrate(self) -> CounterSnapshot:
        """
        Loads the persisted counters on startup.

        Missing state initializes zeros and writes them back; an unreachable
        store keeps zeros in memory. activeUsers always restarts at zero.
        """
        async with self._lock:
            try:
                raw = await asyncio.wait_for(
                    self.redis.hgetall(self.keys.stats()),
                    timeout=self.config.persist_timeout_seconds,
                )
            except (RedisError, OSError, asyncio.TimeoutError) as e:
                logger.error(f"❌ Failed to load counters from Redis: {e!r}. Starting from zero")
                return self._snapshot

            if raw:
                try:
                    restored = {k: max(0, int(v)) for k, v in raw.items() if k in _PERSISTED_FIELDS}
                    # Sessions do not survive a restart
                    restored["activeUsers"] = 0
                    self._snapshot = CounterSnapshot.model_validate(restored)
                except (ValueError, ValidationError) as e:
                    logger.error(f"❌ Persisted counters are corrupt ({e}). Starting from zero")
                    self._snapshot = CounterSnapshot()
            else:
                logger.info("No persisted counters found, initializing zero state")
                await self._persist_or_log(self._snapshot)

            self._tier = tier_for(self._snapshot.solved_count)
            logger.info(
                f"✅ Counters initialized: {self._snapshot.to_payload()} (tier {int(self._tier)})"
            )
            return self._snapshot

    async def register_session(self) -> CounterSnapshot:
        return await self._mutate(
            lambda s: s.model_copy(update={"active_users": s.active_users + 1})
        )

    async def end_session(self) -> CounterSnapshot:
        return await self._mutate(
            lambda s: s.model_copy(update={"active_users": max(0, s.active_users - 1)})
        )

    async def record_activation(self) -> CounterSnapshot:
        return await self._mutate(
            lambda s: s.model_copy(update={"activated_count": s.activated_count + 1})
        )

    async def record_solve(self) -> SolveResult:
        async with self._lock:
            snapshot = self._apply(
                lambda s: s.model_copy(update={"solved_count": s.solved_count + 1})
            )
            new_tier = tier_for(snapshot.solved_count)
            tier_changed = new_tier != self._tier
            if tier_changed:
                logger.info(f"📈 Difficulty tier {int(self._tier)} -> {int(new_tier)} at {snapshot.solved_count} solves")
            self._tier = new_tier
            await self._persist_or_log(snapshot)
            return SolveResult(snapshot=snapshot, tier_changed=tier_changed, tier=new_tier)

    async def _mutate(self, change: Callable[[CounterSnapshot], CounterSnapshot]) -> CounterSnapshot:
        async with self._lock:
            snapshot = self._apply(change)
            await self._persist_or_log(snapshot)
            return snapshot

    def _apply(self, change: Callable[[CounterSnapshot], CounterSnapshot]) -> CounterSnapshot:
        self._snapshot = change(self._snapshot)
        return self._snapshot

    async def _persist(self, snapshot: CounterSnapshot) -> None:
        try:
            await asyncio.wait_for(
                self.redis.hset(self.keys.stats(), mapping=snapshot.to_payload()),
                timeout=self.config.persist_timeout_seconds,
            )
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            raise PersistenceWriteFailure(f"Failed to persist counters: {e!r}") from e

    async def _persist_or_log(self, snapshot: CounterSnapshot) -> None:
        try:
            await self._persist(snapshot)
        except PersistenceWriteFailure as e:
            logger.error(f"❌ {e}. Keeping in-memory counters")
