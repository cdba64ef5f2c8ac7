# enigma/services/reputation_cache.py
"""
Time-bounded cache in front of the reputation provider.
"""
import asyncio
import time
from typing import Callable, Dict, Optional

from loguru import logger

from enigma.config.models import ReputationConfig
from enigma.services.errors import ReputationProviderUnavailable
from enigma.services.reputation_provider import ReputationProvider
from enigma.utils.models import CacheEntry, ReputationVerdict
from enigma.utils.network import normalize_address


class ReputationCache:
    """
    Maps a network address to a cached verdict with an expiry.

    - The provider is only called on a miss or after expiry
    - An entry is never served at or past its expiry
    - Provider failures return a fail-open verdict and are not cached
    - Size is bounded by `max_entries`; a background task sweeps expired entries

    Concurrent lookups of the same address may both reach the provider;
    the last one to finish wins the slot.
    """

    def __init__(
        self,
        provider: ReputationProvider,
        config: ReputationConfig,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.provider = provider
        self.config = config
        self._clock = clock

        self._entries: Dict[str, CacheEntry] = {}
        self._hit_count = 0
        self._miss_count = 0
        self._failure_count = 0
        self._sweep_task: Optional[asyncio.Task] = None

        logger.debug(
            f"🔧 ReputationCache initialized (TTL: {config.cache_ttl_seconds}s, "
            f"max entries: {config.max_entries})"
        )

    async def lookup(self, address: str) -> ReputationVerdict:
        """
        Returns the verdict for an address, calling the provider only when needed.

        Args:
            address: IPv4/IPv6 address, optionally with the ::ffff: prefix

        Returns:
            Cached or fresh verdict; the fail-open verdict if the provider failed
        """
        key = normalize_address(address)

        cached = self.peek(key)
        if cached is not None:
            self._hit_count += 1
            logger.debug(f"✅ Reputation cache HIT for {key}")
            return cached

        self._miss_count += 1
        logger.debug(f"❌ Reputation cache MISS for {key}")

        try:
            verdict = await asyncio.wait_for(
                self.provider.fetch(key),
                timeout=self.config.timeout_seconds,
            )
        except asyncio.TimeoutError:
            self._failure_count += 1
            logger.warning(
                f"⚠️ Reputation lookup for {key} timed out after "
                f"{self.config.timeout_seconds}s, allowing access"
            )
            return ReputationVerdict.fail_open()
        except ReputationProviderUnavailable as e:
            self._failure_count += 1
            logger.warning(f"⚠️ Reputation provider unavailable for {key}: {e}. Allowing access")
            return ReputationVerdict.fail_open()
        except Exception:
            self._failure_count += 1
            logger.exception(f"❌ Unexpected reputation provider error for {key}, allowing access")
            return ReputationVerdict.fail_open()

        self._store(key, verdict)
        return verdict

    def peek(self, address: str) -> Optional[ReputationVerdict]:
        """Returns a live cached verdict without calling the provider."""
        key = normalize_address(address)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_live(self._clock()):
            return entry.verdict
        # Expired entries are absent
        self._entries.pop(key, None)
        return None

    def _store(self, key: str, verdict: ReputationVerdict) -> None:
        now = self._clock()
        if key not in self._entries and len(self._entries) >= self.config.max_entries:
            self._make_room(now)
        self._entries[key] = CacheEntry(
            verdict=verdict,
            expires_at=now + self.config.cache_ttl_seconds,
        )

    def _make_room(self, now: float) -> None:
        self.sweep(now)
        overflow = len(self._entries) - self.config.max_entries + 1
        if overflow <= 0:
            return
        oldest = sorted(self._entries.items(), key=lambda item: item[1].expires_at)[:overflow]
        for key, _ in oldest:
            del self._entries[key]
        logger.debug(f"📦 Reputation cache full, evicted {len(oldest)} entries")

    def sweep(self, now: Optional[float] = None) -> int:
        """
        Drops expired entries.

        Returns:
            Number of entries removed
        """
        now = self._clock() if now is None else now
        expired = [key for key, entry in self._entries.items() if not entry.is_live(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"🧹 Swept {len(expired)} expired reputation entries")
        return len(expired)

    async def _sweep_loop(self) -> None:
        interval = self.config.sweep_interval_seconds
        logger.debug(f"🔄 Reputation cache sweep loop started (interval: {interval}s)")
        try:
            while True:
                await asyncio.sleep(interval)
                self.sweep()
        except asyncio.CancelledError:
            logger.debug("Reputation cache sweep loop cancelled")
            raise

    def start(self) -> None:
        """Starts the periodic sweep task."""
        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = asyncio.create_task(
                self._sweep_loop(),
                name="reputation_cache_sweep",
            )

    async def stop(self) -> None:
        """Cancels the periodic sweep task."""
        if self._sweep_task and not self._sweep_task.done():
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
        self._sweep_task = None

    def clear(self) -> None:
        """Empties the cache."""
        size = len(self._entries)
        self._entries.clear()
        logger.info(f"🔄 Reputation cache cleared ({size} entries removed)")

    def __contains__(self, address: str) -> bool:
        return self.peek(address) is not None

    def __len__(self) -> int:
        return len(self._entries)

    def get_hit_rate(self) -> float:
        total = self._hit_count + self._miss_count
        if total == 0:
            return 0.0
        return (self._hit_count / total) * 100

    def get_stats(self) -> dict:
        return {
            "size": len(self._entries),
            "hits": self._hit_count,
            "misses": self._miss_count,
            "failures": self._failure_count,
            "hit_rate": self.get_hit_rate(),
        }
