# enigma/config/models/__init__.py
from enigma.config.models.core import FeatureFlags, LoggingConfig
from enigma.config.models.security import ReputationConfig
from enigma.config.models.services import CounterServiceConfig, RedisConfig

__all__ = [
    "FeatureFlags",
    "LoggingConfig",
    "ReputationConfig",
    "CounterServiceConfig",
    "RedisConfig",
]
