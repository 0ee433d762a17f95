# booking_assistant/config.py
import os
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid integer for {name}={raw!r}, using default {default}")
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Runtime configuration, read from environment variables"""
    operating_timezone: str = "Asia/Riyadh"
    redis_url: Optional[str] = None
    use_local_redis: bool = False
    redis_host: str = "localhost"
    redis_port: int = 6379
    session_ttl_seconds: int = 3600
    search_ttl_minutes: int = 30
    tool_timeout_seconds: int = 30
    weather_api_url: str = "https://api.open-meteo.com"
    weather_timeout_seconds: int = 5
    max_workers: int = 5
    log_level: str = "INFO"

    @property
    def uses_redis(self) -> bool:
        return bool(self.redis_url) or self.use_local_redis

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            operating_timezone=os.getenv("OPERATING_TIMEZONE", cls.operating_timezone),
            redis_url=os.getenv("REDIS_URL") or None,
            use_local_redis=_env_bool("USE_LOCAL_REDIS"),
            redis_host=os.getenv("REDIS_HOST", cls.redis_host),
            redis_port=_env_int("REDIS_PORT", cls.redis_port),
            session_ttl_seconds=_env_int("SESSION_TTL_SECONDS", cls.session_ttl_seconds),
            search_ttl_minutes=_env_int("SEARCH_TTL_MINUTES", cls.search_ttl_minutes),
            tool_timeout_seconds=_env_int("TOOL_TIMEOUT_SECONDS", cls.tool_timeout_seconds),
            weather_api_url=os.getenv("WEATHER_API_URL", cls.weather_api_url),
            weather_timeout_seconds=_env_int("WEATHER_TIMEOUT_SECONDS", cls.weather_timeout_seconds),
            max_workers=_env_int("MAX_WORKERS", cls.max_workers),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )
