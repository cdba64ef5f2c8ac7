# enigma/services/broadcast_service.py
import asyncio
from typing import Any, Awaitable, Dict, List, Optional, Set, TypeVar

from loguru import logger

from enigma.services.counter_service import CounterService
from enigma.utils.models import CounterSnapshot, DifficultyTier, Session

STATS_UPDATE = "stats_update"
DIFFICULTY_CHANGE = "difficulty_change"
ERROR = "error"

T = TypeVar("T")


class BroadcastService:
    """
    Registry of connected realtime sessions and fan-out of counter changes.

    Delivery is best effort: a session that misses an event is made whole
    by the snapshot pushed when it (re)connects, never by replay.
    """

    def __init__(self, counter_service: CounterService):
        self.counters = counter_service
        self._sessions: Dict[str, Session] = {}
        self._pending: Set[asyncio.Future] = set()
        logger.info("✅ BroadcastService initialized.")

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    def sessions(self) -> List[Session]:
        return list(self._sessions.values())

    async def run_to_completion(self, work: Awaitable[T]) -> T:
        """
        Runs session bookkeeping that must finish even if the caller is cancelled.

        aiohttp cancels a WebSocket handler when its peer goes away; the
        counter update and its broadcast keep running in a tracked task that
        `close_all` waits for on shutdown.
        """
        task = asyncio.ensure_future(work)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return await asyncio.shield(task)

    async def on_connect(self, session: Session) -> CounterSnapshot:
        """Registers a session, counts it and pushes the current state to it."""
        self._sessions[session.id] = session
        logger.info(f"🔌 Client connected: {session.id} ({self.session_count} online)")

        snapshot = await self.counters.register_session()
        await self.broadcast(snapshot)
        await self.emit(session, DIFFICULTY_CHANGE, {"tier": int(self.counters.current_tier())})
        return snapshot

    async def on_disconnect(self, session: Session) -> Optional[CounterSnapshot]:
        """Removes a session; unknown or already removed sessions are ignored."""
        if self._sessions.pop(session.id, None) is None:
            return None
        logger.info(f"🔌 Client disconnected: {session.id} ({self.session_count} online)")

        snapshot = await self.counters.end_session()
        await self.broadcast(snapshot)
        return snapshot

    async def broadcast(
        self,
        snapshot: CounterSnapshot,
        tier_changed: bool = False,
        tier: Optional[DifficultyTier] = None,
    ) -> None:
        """Sends the snapshot to every session, plus a difficulty event on tier change."""
        # Copy: sessions may connect or disconnect while we await sends
        targets = self.sessions()
        if not targets:
            return

        await self._fan_out(targets, STATS_UPDATE, snapshot.to_payload())

        if tier_changed:
            current = tier if tier is not None else self.counters.current_tier()
            logger.info(f"📢 Broadcasting difficulty change to tier {int(current)}")
            await self._fan_out(targets, DIFFICULTY_CHANGE, {"tier": int(current)})

    async def emit(self, session: Session, event: str, data: Dict[str, Any]) -> bool:
        """Sends one event to one session. Returns False if the send failed."""
        try:
            await session.transport.send_json({"event": event, "data": data})
            return True
        except Exception as e:
            logger.warning(f"⚠️ Failed to deliver '{event}' to session {session.id}: {e!r}")
            return False

    async def _fan_out(self, targets: List[Session], event: str, data: Dict[str, Any]) -> None:
        results = await asyncio.gather(*(self.emit(s, event, data) for s in targets))
        failed = results.count(False)
        if failed:
            logger.debug(f"'{event}' delivered to {len(targets) - failed}/{len(targets)} sessions")

    async def close_all(self) -> None:
        """Closes every session transport on shutdown and waits for pending bookkeeping."""
        for session in self.sessions():
            close = getattr(session.transport, "close", None)
            if close is None:
                continue
            try:
                await close()
            except Exception as e:
                logger.warning(f"⚠️ Error closing session {session.id}: {e!r}")
        self._sessions.clear()

        if self._pending:
            results = await asyncio.gather(*self._pending, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.warning(f"⚠️ Session bookkeeping failed during shutdown: {result!r}")
