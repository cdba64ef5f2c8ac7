# enigma/services/reputation_provider.py
import asyncio
from typing import Optional, Protocol

import aiohttp
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from enigma.config.models import ReputationConfig
from enigma.services.errors import ReputationProviderUnavailable
from enigma.utils.http_client import HTTPClient
from enigma.utils.models import ReputationSignals, ReputationVerdict, utcnow


class ReputationProvider(Protocol):
    async def fetch(self, address: str) -> ReputationVerdict:
        ...


class IPQSResponse(BaseModel):
    """Subset of the IPQualityScore proxy/VPN detection payload"""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    success: bool
    message: Optional[str] = None
    proxy: bool = False
    vpn: bool = False
    tor: bool = False
    fraud_score: float = 0.0
    country_code: Optional[str] = None
    isp: Optional[str] = Field(default=None, alias="ISP")


class IPQualityScoreProvider:
    """
    Reputation provider backed by the IPQualityScore IP lookup API.

    Every failure mode is reported as ReputationProviderUnavailable so the
    cache can apply its fail-open policy in one place.
    """

    def __init__(self, http_client: HTTPClient, api_key: Optional[str], config: ReputationConfig):
        self.http = http_client
        self.api_key = api_key
        self.config = config
        logger.info("✅ IPQualityScoreProvider initialized.")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def fetch(self, address: str) -> ReputationVerdict:
        if not self.is_configured:
            raise ReputationProviderUnavailable("IPQualityScore API key is not configured")

        url = f"{self.config.base_url.rstrip('/')}/{self.api_key}/{address}"
        params = {
            "strictness": self.config.strictness,
            "allow_public_access_points": str(self.config.allow_public_access_points).lower(),
            "fast": "false",
            "mobile": "false",
        }

        try:
            raw = await self.http.get(url, params=params, timeout=self.config.timeout_seconds)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ReputationProviderUnavailable(f"IPQualityScore request failed: {e!r}") from e

        if not isinstance(raw, dict):
            raise ReputationProviderUnavailable("IPQualityScore returned a non-object payload")

        try:
            data = IPQSResponse.model_validate(raw)
        except ValidationError as e:
            raise ReputationProviderUnavailable(f"Malformed IPQualityScore payload: {e}") from e

        if not data.success:
            # Quota exhaustion and invalid keys come back as success=false
            raise ReputationProviderUnavailable(
                f"IPQualityScore rejected the lookup: {data.message or 'no message'}"
            )

        signals = ReputationSignals(proxy=data.proxy, vpn=data.vpn, tor=data.tor)
        return ReputationVerdict(
            is_suspicious=signals.detected,
            signals=signals,
            risk_score=data.fraud_score,
            observed_at=utcnow(),
            country_code=data.country_code,
            isp=data.isp,
        )
