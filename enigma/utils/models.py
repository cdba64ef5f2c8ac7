# enigma/utils/models.py
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
    )

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# --- Reputation ---

class ReputationSignals(CamelModel):
    """Proxy / VPN / Tor flags reported by the provider"""
    model_config = ConfigDict(frozen=True)

    proxy: bool = False
    vpn: bool = False
    tor: bool = False

    @property
    def detected(self) -> bool:
        return self.proxy or self.vpn or self.tor


class ReputationVerdict(CamelModel):
    """Classification of a network address. Immutable once produced."""
    model_config = ConfigDict(frozen=True)

    is_suspicious: bool
    signals: ReputationSignals = Field(default_factory=ReputationSignals)
    risk_score: float = 0.0
    observed_at: datetime = Field(default_factory=utcnow)
    country_code: Optional[str] = None
    isp: Optional[str] = None

    @classmethod
    def fail_open(cls) -> "ReputationVerdict":
        """Clean verdict used when the provider cannot be reached."""
        return cls(is_suspicious=False)


@dataclass(frozen=True)
class CacheEntry:
    verdict: ReputationVerdict
    expires_at: float

    def is_live(self, now: float) -> bool:
        return now < self.expires_at


@dataclass(frozen=True)
class AdmissionDecision:
    allowed: bool
    reason: Optional[ReputationSignals] = None


# --- Counters ---

class DifficultyTier(IntEnum):
    """Global difficulty level derived from the solved counter"""
    ONE = 1
    TWO = 2
    THREE = 3


class CounterSnapshot(CamelModel):
    """Immutable point-in-time copy of the three counters."""
    model_config = ConfigDict(frozen=True)

    active_users: int = Field(default=0, ge=0)
    activated_count: int = Field(default=0, ge=0)
    solved_count: int = Field(default=0, ge=0)


@dataclass(frozen=True)
class SolveResult:
    snapshot: CounterSnapshot
    tier_changed: bool
    tier: DifficultyTier


# --- Sessions ---

@dataclass(eq=False)
class Session:
    """A connected realtime client. `transport` must provide `send_json`."""
    transport: Any
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    connected_at: datetime = field(default_factory=utcnow)


# --- Requests ---

class RegisterIdentityRequest(CamelModel):
    device_fingerprint: str = Field(min_length=1, max_length=512)


class ActivateRequest(CamelModel):
    identity_id: str = Field(min_length=1, max_length=128)


class SolveRequest(CamelModel):
    identity_id: str = Field(min_length=1, max_length=128)
    level: int = Field(ge=1)


class CheckReputationRequest(CamelModel):
    address: Optional[str] = Field(default=None, max_length=64)
