"""Application Settings - Central Configuration"""
from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # MongoDB
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "status_workflow_dev"

    # Logging
    logs_path: str = "./logs"
    log_level: str = "INFO"

    # CORS - set to "*" to allow all origins
    cors_origins: str = "*"

    # Transition engine
    published_cache_ttl_seconds: int = 30  # Bounds staleness of the published graph across processes
    transition_max_retries: int = 3  # Retries of transition_to on a lost compare-and-swap

    # Reconciliation
    reconciliation_enabled: bool = True
    reconciliation_interval_seconds: int = 300
    reconciliation_lookback_minutes: int = 60
    reconciliation_grace_seconds: int = 30  # Skip entities changed more recently than this
    reconciliation_batch_size: int = 500

    # Environment
    environment: str = "development"
    debug: bool = True

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins string to list"""
        return [origin.strip() for origin in self.cors_origins.split(",")]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
