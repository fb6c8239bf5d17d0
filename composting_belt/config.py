"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache): single instance per process
    - default_decay_rate is validated to [0, 1)

Design Decisions:
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

from composting_belt.core.domain_types import DEFAULT_DECAY_RATE, GEOFENCE_RADIUS_M


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://compost:compost@db:5432/compost"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """asyncpg needs the postgresql+asyncpg:// scheme."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Belt
    default_decay_rate: float = DEFAULT_DECAY_RATE
    geofence_radius_m: float = GEOFENCE_RADIUS_M

    @field_validator("default_decay_rate")
    @classmethod
    def check_decay_rate(cls, v: float) -> float:
        if not 0.0 <= v < 1.0:
            raise ValueError("default_decay_rate must be in [0, 1)")
        return v

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
