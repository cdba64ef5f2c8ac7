# enigma/services/reputation_gate.py
from typing import Iterable

from loguru import logger

from enigma.services.reputation_cache import ReputationCache
from enigma.utils.models import AdmissionDecision
from enigma.utils.network import is_trusted, normalize_address, parse_networks


class ReputationGate:
    """
    Admit / reject policy on top of ReputationCache.

    Trusted networks (loopback and private ranges) bypass the cache entirely;
    they are operator and development shortcuts, not a security boundary.
    """

    def __init__(
        self,
        cache: ReputationCache,
        trusted_networks: Iterable[str],
        enabled: bool = True,
        trusted_proxies: Iterable[str] = (),
    ):
        self.cache = cache
        self.trusted_networks = parse_networks(trusted_networks)
        self.trusted_proxies = parse_networks(trusted_proxies)
        self.enabled = enabled
        if not enabled:
            logger.warning("⚠️ Reputation checking is disabled, every client is admitted")
        logger.info("✅ ReputationGate initialized.")

    async def admit(self, address: str) -> AdmissionDecision:
        if not self.enabled:
            return AdmissionDecision(allowed=True)

        clean = normalize_address(address)
        if not clean or is_trusted(clean, self.trusted_networks):
            return AdmissionDecision(allowed=True)

        verdict = await self.cache.lookup(clean)
        if verdict.is_suspicious:
            logger.info(f"🚫 Blocking proxy/VPN/Tor address {clean} (risk: {verdict.risk_score})")
            return AdmissionDecision(allowed=False, reason=verdict.signals)

        return AdmissionDecision(allowed=True)
