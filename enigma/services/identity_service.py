# enigma/services/identity_service.py
import uuid
from typing import Dict, Optional, Tuple

from loguru import logger
from redis.asyncio import Redis

from enigma.services.errors import UnknownIdentity
from enigma.utils.keys import KeyFactory
from enigma.utils.models import utcnow


class IdentityService:
    """
    Redis-backed registry of client identities.

    Identities are opaque strings issued for a device fingerprint; the rest
    of the service only checks that they exist.
    """

    def __init__(self, redis_client: Redis):
        self.redis = redis_client
        self.keys = KeyFactory
        logger.info("✅ IdentityService initialized.")

    async def register(self, fingerprint: str) -> Tuple[str, bool]:
        """
        Returns the identity for a fingerprint, issuing one if needed.

        HSETNX on the fingerprint map decides the winner when two requests
        register the same fingerprint concurrently.

        Returns:
            (identity_id, is_new)
        """
        candidate = str(uuid.uuid4())
        now = utcnow().isoformat()

        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.hset(
                self.keys.identity_profile(candidate),
                mapping={
                    "id": candidate,
                    "fingerprint": fingerprint,
                    "createdAt": now,
                    "lastSeen": now,
                },
            )
            pipe.hsetnx(self.keys.fingerprint_to_identity_map(), fingerprint, candidate)
            _, claimed = await pipe.execute()

        if not claimed:
            await self.redis.delete(self.keys.identity_profile(candidate))
            existing = await self.redis.hget(self.keys.fingerprint_to_identity_map(), fingerprint)
            await self.touch(existing)
            logger.info(f"Known device, returning identity {existing}")
            return existing, False

        await self.redis.sadd(self.keys.all_identities_set(), candidate)
        logger.success(f"Registered new identity {candidate}")
        return candidate, True

    async def exists(self, identity_id: str) -> bool:
        return await self.redis.exists(self.keys.identity_profile(identity_id)) > 0

    async def get_identity(self, identity_id: str) -> Optional[Dict[str, str]]:
        data = await self.redis.hgetall(self.keys.identity_profile(identity_id))
        return data or None

    async def touch(self, identity_id: str) -> None:
        await self.redis.hset(self.keys.identity_profile(identity_id), "lastSeen", utcnow().isoformat())

    async def mark_activated(self, identity_id: str) -> None:
        await self._ensure_exists(identity_id)
        now = utcnow().isoformat()
        await self.redis.hset(
            self.keys.identity_profile(identity_id),
            mapping={"activated": "1", "activatedAt": now, "lastSeen": now},
        )

    async def mark_solved(self, identity_id: str, level: int) -> None:
        await self._ensure_exists(identity_id)
        now = utcnow().isoformat()
        await self.redis.hset(
            self.keys.identity_profile(identity_id),
            mapping={f"solved:{level}": "1", f"solvedAt:{level}": now, "lastSeen": now},
        )

    async def _ensure_exists(self, identity_id: str) -> None:
        if not await self.exists(identity_id):
            raise UnknownIdentity(identity_id)
