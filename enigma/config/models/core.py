# enigma/config/models/core.py
from typing import List

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class FeatureFlags(BaseModel):
    model_config = ConfigDict(protected_namespaces=(), populate_by_name=True)

    enable_reputation_check: bool = Field(
        default=True,
        validation_alias=AliasChoices("enable_reputation_check", "vpn_detection_enabled"),
    )


class LoggingConfig(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    json_enabled: bool = False
    service_name: str = "enigma-gate"
    debug_loggers: List[str] = []
