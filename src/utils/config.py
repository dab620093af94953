"""
Configuration Management

Environment-driven settings for the signal API, read with Pydantic
Settings (a local .env file is picked up when present).

Per-project classifier thresholds are not configured here; they travel
with each request as QuickWinSettings / FallingStarSettings.
"""

from typing import Optional
from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Application
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    API_TITLE: str = "Rank Signal Engine"

    # Project domain dropped from competitor aggregates when a request omits it
    OWN_DOMAIN: Optional[str] = None

    # Size of the topOpportunities list in backlink aggregations
    TOP_OPPORTUNITIES_LIMIT: int = 10

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        case_sensitive = False


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
