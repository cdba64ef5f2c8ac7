# enigma/services/progress_service.py
from loguru import logger

from enigma.services.broadcast_service import BroadcastService
from enigma.services.counter_service import CounterService
from enigma.services.identity_service import IdentityService
from enigma.utils.models import CounterSnapshot, SolveResult


class ProgressService:
    """
    Single path for activations and solves.

    HTTP endpoints and socket events both land here, so each action
    increments the counters exactly once and is broadcast exactly once.
    """

    def __init__(
        self,
        identity_service: IdentityService,
        counter_service: CounterService,
        broadcast_service: BroadcastService,
    ):
        self.identities = identity_service
        self.counters = counter_service
        self.broadcaster = broadcast_service
        logger.info("✅ ProgressService initialized.")

    async def activate(self, identity_id: str) -> CounterSnapshot:
        """
        Raises:
            UnknownIdentity: counters are left untouched
        """
        await self.identities.mark_activated(identity_id)
        snapshot = await self.counters.record_activation()
        await self.broadcaster.broadcast(snapshot)
        return snapshot

    async def solve(self, identity_id: str, level: int) -> SolveResult:
        """
        Raises:
            UnknownIdentity: counters are left untouched
        """
        await self.identities.mark_solved(identity_id, level)
        result = await self.counters.record_solve()
        await self.broadcaster.broadcast(result.snapshot, result.tier_changed, result.tier)
        return result
