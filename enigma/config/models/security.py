# enigma/config/models/security.py
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_TRUSTED_NETWORKS = [
    "127.0.0.0/8",
    "10.0.0.0/8",
    "192.168.0.0/16",
    "::1/128",
]


class ReputationConfig(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    base_url: str = "https://www.ipqualityscore.com/api/json/ip"
    strictness: int = Field(default=1, ge=0, le=3)
    allow_public_access_points: bool = True

    cache_ttl_seconds: int = Field(default=3600, gt=0)
    max_entries: int = Field(default=10_000, gt=0)
    sweep_interval_seconds: int = Field(default=300, gt=0)
    timeout_seconds: float = Field(default=4.0, gt=0)

    trusted_networks: List[str] = Field(default_factory=lambda: list(DEFAULT_TRUSTED_NETWORKS))
    # Peers whose X-Forwarded-For / X-Real-IP headers are believed
    trusted_proxies: List[str] = Field(default_factory=list)

    @field_validator("trusted_networks", "trusted_proxies", mode="before")
    @classmethod
    def parse_trusted_networks(cls, v):
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v
