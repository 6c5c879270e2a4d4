"""
Configuration management using Pydantic Settings.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_prefix="CAQ_",  # Colorado Air Quality prefix
        env_file=".env",
        extra="ignore",
    )

    # Project paths
    project_root: Path = Path(__file__).parent.parent.parent.parent
    data_dir: Path = project_root / "data"

    # AirNow API
    airnow_api_key: Optional[SecretStr] = Field(default=None)
    airnow_base_url: str = Field(default="https://www.airnowapi.org")
    api_timeout_seconds: float = 30.0

    # Rate limiting (AirNow allows ~500 requests/hour per key)
    max_concurrent_requests: int = Field(default=3, ge=1)
    request_spacing_seconds: float = Field(default=0.5, ge=0)
    cache_ttl_seconds: float = Field(default=30 * 60, ge=0)
    fallback_jitter: int = Field(default=5, ge=0)

    # Pollutants tracked per region, in collection order
    pollutants: list[str] = Field(
        default_factory=lambda: ["PM2.5", "Ozone", "PM10", "NO2", "SO2", "CO"]
    )
    primary_pollutant: str = "PM2.5"
    pollutant_jitter: float = Field(default=0.1, ge=0, lt=1)

    # Rolling history
    history_max_days: int = Field(default=30, ge=1)

    # Daily collection at 00:30 local time
    collection_hour: int = Field(default=0, ge=0, le=23)
    collection_minute: int = Field(default=30, ge=0, le=59)
    catchup_interval_seconds: float = Field(default=60 * 60, gt=0)
    timezone: str = "America/Denver"

    # Persistence
    store_backend: str = Field(default="file", pattern="^(file|redis)$")
    store_path: Path = data_dir / "historical_data.json"
    store_key: str = "colorado_regional_historical_data"
    redis_url: str = "redis://localhost:6379/0"

    # Optional JSON file replacing the bundled region table
    regions_file: Optional[Path] = None

    # Metrics
    metrics_enabled: bool = True
    metrics_port: int = 9092

    # Logging
    log_level: str = "INFO"

    @model_validator(mode="after")
    def check_primary_pollutant(self) -> "Settings":
        if not self.pollutants:
            raise ValueError("pollutants must not be empty")
        if self.primary_pollutant not in self.pollutants:
            raise ValueError(
                f"primary_pollutant {self.primary_pollutant!r} is not in pollutants {self.pollutants}"
            )
        return self

    def redacted(self) -> Dict[str, Any]:
        return {
            "airnow_base_url": self.airnow_base_url,
            "airnow_api_key": ("set" if self.airnow_api_key else None),
            "store_backend": self.store_backend,
            "store_path": str(self.store_path),
            "redis_url": (self.redis_url if self.store_backend == "redis" else None),
            "pollutants": self.pollutants,
            "collection_time": f"{self.collection_hour:02d}:{self.collection_minute:02d}",
            "timezone": self.timezone,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
