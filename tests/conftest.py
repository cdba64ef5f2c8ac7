import os
import sys
from pathlib import Path

import pytest
import pytest_asyncio
import fakeredis.aioredis

# Minimal env variables so importing settings does not fail
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("IPQUALITYSCORE_API_KEY", "test-key")

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from enigma.config.models import CounterServiceConfig, ReputationConfig  # noqa: E402
from helpers import FakeClock  # noqa: E402


@pytest_asyncio.fixture
async def redis():
    r = fakeredis.aioredis.FakeRedis(decode_responses=True)
    await r.flushall()
    yield r
    await r.flushall()
    await r.aclose()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def reputation_config():
    return ReputationConfig(cache_ttl_seconds=60, max_entries=3, timeout_seconds=0.05)


@pytest.fixture
def counter_config():
    return CounterServiceConfig(persist_timeout_seconds=0.5)
