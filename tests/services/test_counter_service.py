import asyncio
import random

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from enigma.services.counter_service import CounterService
from enigma.utils.keys import KeyFactory
from enigma.utils.models import DifficultyTier


class DownRedis:
    """Store that rejects every call."""

    def __init__(self):
        self.writes = 0

    async def hgetall(self, key):
        raise RedisConnectionError("store is down")

    async def hset(self, *args, **kwargs):
        self.writes += 1
        raise RedisConnectionError("store is down")


class SlowRedis:
    async def hgetall(self, key):
        await asyncio.sleep(5)

    async def hset(self, *args, **kwargs):
        await asyncio.sleep(5)


@pytest.mark.asyncio
async def test_hydrate_without_state_writes_zeros(redis, counter_config):
    service = CounterService(redis, counter_config)

    snapshot = await service.hydrate()

    assert snapshot.to_payload() == {"activeUsers": 0, "activatedCount": 0, "solvedCount": 0}
    stored = await redis.hgetall(KeyFactory.stats())
    assert stored == {"activeUsers": "0", "activatedCount": "0", "solvedCount": "0"}


@pytest.mark.asyncio
async def test_hydrate_restores_progress_and_resets_sessions(redis, counter_config):
    await redis.hset(
        KeyFactory.stats(),
        mapping={"activeUsers": 12, "activatedCount": 40, "solvedCount": 150},
    )
    service = CounterService(redis, counter_config)

    snapshot = await service.hydrate()

    assert snapshot.activated_count == 40
    assert snapshot.solved_count == 150
    assert snapshot.active_users == 0
    assert service.current_tier() is DifficultyTier.TWO


@pytest.mark.asyncio
async def test_hydrate_with_store_down_starts_from_zero(counter_config):
    service = CounterService(DownRedis(), counter_config)

    snapshot = await service.hydrate()

    assert snapshot.solved_count == 0


@pytest.mark.asyncio
async def test_mutations_persist_snapshot(redis, counter_config):
    service = CounterService(redis, counter_config)
    await service.hydrate()

    await service.register_session()
    await service.record_activation()
    await service.record_solve()

    stored = await redis.hgetall(KeyFactory.stats())
    assert stored == {"activeUsers": "1", "activatedCount": "1", "solvedCount": "1"}


@pytest.mark.asyncio
async def test_end_session_floors_at_zero(redis, counter_config):
    service = CounterService(redis, counter_config)

    await service.register_session()
    await service.end_session()
    snapshot = await service.end_session()

    assert snapshot.active_users == 0


@pytest.mark.asyncio
async def test_concurrent_session_churn_matches_serial_replay(redis, counter_config):
    service = CounterService(redis, counter_config)
    ops = ["register"] * 60 + ["end"] * 40
    random.Random(7).shuffle(ops)

    async def run(op):
        if op == "register":
            snapshot = await service.register_session()
        else:
            snapshot = await service.end_session()
        assert snapshot.active_users >= 0

    await asyncio.gather(*(run(op) for op in ops))

    # The lock is FIFO and gather starts the tasks in order, so mutations apply in list order
    expected = 0
    for op in ops:
        expected = expected + 1 if op == "register" else max(0, expected - 1)

    assert service.snapshot().active_users == expected
    stored = await redis.hgetall(KeyFactory.stats())
    assert stored["activeUsers"] == str(expected)


@pytest.mark.asyncio
async def test_concurrent_increments_are_not_lost(redis, counter_config):
    service = CounterService(redis, counter_config)

    await asyncio.gather(
        *(service.record_activation() for _ in range(50)),
        *(service.record_solve() for _ in range(50)),
    )

    snapshot = service.snapshot()
    assert snapshot.activated_count == 50
    assert snapshot.solved_count == 50
    stored = await redis.hgetall(KeyFactory.stats())
    assert stored["activatedCount"] == "50"
    assert stored["solvedCount"] == "50"


@pytest.mark.asyncio
async def test_solve_crossing_boundary_reports_tier_change(redis, counter_config):
    await redis.hset(KeyFactory.stats(), mapping={"activeUsers": 0, "activatedCount": 0, "solvedCount": 99})
    service = CounterService(redis, counter_config)
    await service.hydrate()
    assert service.current_tier() is DifficultyTier.ONE

    result = await service.record_solve()

    assert result.snapshot.solved_count == 100
    assert result.tier_changed is True
    assert result.tier is DifficultyTier.TWO

    again = await service.record_solve()
    assert again.tier_changed is False
    assert again.tier is DifficultyTier.TWO


@pytest.mark.asyncio
async def test_tier_never_decreases_over_solves(redis, counter_config):
    service = CounterService(redis, counter_config)
    tiers = []
    changes = 0
    for _ in range(1001):
        result = await service.record_solve()
        tiers.append(result.tier)
        changes += result.tier_changed

    assert all(a <= b for a, b in zip(tiers, tiers[1:]))
    assert tiers[-1] is DifficultyTier.THREE
    assert changes == 2


@pytest.mark.asyncio
async def test_persistence_failure_keeps_memory_state(counter_config):
    store = DownRedis()
    service = CounterService(store, counter_config)

    await service.record_activation()
    snapshot = await service.record_activation()

    assert snapshot.activated_count == 2
    assert service.snapshot().activated_count == 2
    assert store.writes == 2


@pytest.mark.asyncio
async def test_slow_store_write_is_bounded(counter_config):
    service = CounterService(SlowRedis(), counter_config)

    result = await asyncio.wait_for(service.record_solve(), timeout=2)

    assert result.snapshot.solved_count == 1
