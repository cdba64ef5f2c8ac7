# enigma/config/settings.py
import logging
from typing import Any, Optional

from pydantic import Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from enigma.config.models import (
    CounterServiceConfig,
    FeatureFlags,
    LoggingConfig,
    RedisConfig,
    ReputationConfig,
)


class Settings(BaseSettings):
    REDIS_URL: str = "redis://localhost:6379/0"

    IPQUALITYSCORE_API_KEY: Optional[SecretStr] = None
    # Legacy switch, overrides feature_flags when set
    VPN_DETECTION_ENABLED: Optional[bool] = None

    HOST: str = "0.0.0.0"
    PORT: int = 3000

    log_level: str = "INFO"
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    feature_flags: FeatureFlags = Field(default_factory=FeatureFlags)
    reputation: ReputationConfig = Field(default_factory=ReputationConfig)
    counters: CounterServiceConfig = Field(default_factory=CounterServiceConfig)
    redis: RedisConfig = Field(default_factory=RedisConfig)

    @field_validator("REDIS_URL", mode="before")
    @classmethod
    def assemble_redis_dsn(cls, v: Any) -> str:
        if isinstance(v, str) and not v.startswith(("redis://", "rediss://", "unix://")):
            return f"redis://{v}"
        return v

    @field_validator("IPQUALITYSCORE_API_KEY", mode="before")
    @classmethod
    def drop_placeholder_key(cls, v: Any) -> Any:
        if isinstance(v, str) and v.strip() in ("", "your_api_key_here"):
            return None
        return v

    @property
    def redis_url(self) -> str:
        return self.REDIS_URL

    @property
    def reputation_api_key(self) -> Optional[str]:
        if self.IPQUALITYSCORE_API_KEY is None:
            return None
        return self.IPQUALITYSCORE_API_KEY.get_secret_value()

    @property
    def reputation_check_enabled(self) -> bool:
        if self.VPN_DETECTION_ENABLED is not None:
            return self.VPN_DETECTION_ENABLED
        return self.feature_flags.enable_reputation_check

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )


try:
    settings = Settings()
    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
    logging.info("✅ Configuration loaded and validated.")
except ValidationError as e:
    logging.critical(
        "❌ CONFIGURATION VALIDATION FAILED. Check .env and environment variables.\n%s",
        e,
    )
    raise SystemExit("Configuration validation errors.")
