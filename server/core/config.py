"""Environment-driven configuration with Pydantic v2."""

from typing import List, Literal, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings driven entirely by environment variables."""

    # Server Configuration
    host: str = Field(default="0.0.0.0", env="HOST")
    port: int = Field(default=6688, env="PORT", ge=1, le=65535)
    debug: bool = Field(default=False, env="DEBUG")
    workers: int = Field(default=1, env="WORKERS", ge=1, le=8)

    # Security
    cors_origins: List[str] = Field(default=["*"], env="CORS_ORIGINS")

    # Primary (in-memory) cache
    cache_ttl: int = Field(default=3600, env="CACHE_TTL", ge=1)
    cache_capacity: int = Field(default=100, env="CACHE_CAPACITY", ge=1)

    # Secondary (Redis) cache - absent host and url disable the tier
    redis_url: Optional[str] = Field(default=None, env="REDIS_URL")
    redis_host: Optional[str] = Field(default=None, env="REDIS_HOST")
    redis_port: int = Field(default=6379, env="REDIS_PORT", ge=1, le=65535)
    redis_password: Optional[str] = Field(default=None, env="REDIS_PASSWORD")
    redis_db: int = Field(default=0, env="REDIS_DB", ge=0)
    redis_socket_timeout: float = Field(default=2.0, env="REDIS_SOCKET_TIMEOUT", gt=0)

    # Upstream requests
    request_timeout: float = Field(default=6.0, env="REQUEST_TIMEOUT", gt=0, le=120)
    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
        ),
        env="USER_AGENT",
    )

    # Logging
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    log_format: Literal["json", "console"] = Field(default="json", env="LOG_FORMAT")
    log_file: Optional[str] = Field(default=None, env="LOG_FILE")

    @field_validator("redis_url", "redis_host", "redis_password")
    @classmethod
    def blank_to_none(cls, v):
        """Treat empty strings from .env files as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def redis_configured(self) -> bool:
        """Check if any Redis connection parameters were provided."""
        return bool(self.redis_url or self.redis_host)

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.debug

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
        "env_parse_none_str": "none",
    }
