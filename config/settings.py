"""
Centralized configuration for the Lead Insights API.

All settings are loaded from environment variables via .env file.
Scoring weights and thresholds live in the JSON file named by
SCORING_CONFIG_PATH.
"""

from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Scoring engine
    scoring_config_path: Optional[str] = Field(default=None)  # bundled default when unset
    insights_top_factors: int = Field(default=5, ge=0)
    top_leads_default_limit: int = Field(default=10, ge=0)
    insights_cache_ttl_seconds: float = Field(default=30.0, ge=0)  # 0 disables the cache
    snapshot_max_attempts: int = Field(default=3, ge=1)

    # API
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    api_title: str = Field(default="Lead Insights API")
    api_version: str = Field(default="1.0.0")
    cors_origins: str = Field(default="*")

    # Logging
    log_level: str = Field(default="INFO")
    debug: bool = Field(default=False)

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
