# enigma/config/models/services.py
from pydantic import BaseModel, ConfigDict, Field


class CounterServiceConfig(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    persist_timeout_seconds: float = Field(default=3.0, gt=0)


class RedisConfig(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    socket_timeout: float = Field(default=3.0, gt=0)
    socket_connect_timeout: float = Field(default=5.0, gt=0)
    health_check_interval: int = 30
