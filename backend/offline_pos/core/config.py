"""Application configuration using pydantic-settings.

Read settings through the module-level `settings` object, not os.getenv().
"""

from functools import lru_cache
from typing import List, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )

    # Local durable store for the offline queue and product cache
    database_url: str = "sqlite:///./data/offline_pos.db"

    # CORS - comma-separated origins or "*" for development only
    cors_origins: str = "http://localhost:3000,http://localhost:8000"

    # ==========================================================================
    # Remote POS API (source of truth for sales and the product catalog)
    # ==========================================================================
    remote_api_base_url: str = "http://localhost:3000"
    remote_sale_path: str = "/api/pos/create-sale"
    remote_products_path: str = "/api/pos/products"
    remote_health_path: str = "/api/health"

    # ==========================================================================
    # Offline sync behaviour
    # ==========================================================================
    sync_submit_timeout_seconds: float = 10.0  # Upper bound per remote submission
    slow_connection_threshold_seconds: float = 3.0  # Probe latency considered "slow"
    connectivity_check_interval_seconds: float = 30.0  # 0 disables the probe loop
    sync_on_reconnect: bool = True
    reconnect_sync_delay_seconds: float = 1.0
    sync_on_enqueue: bool = True  # Sync shortly after a sale is queued while online
    enqueue_sync_delay_seconds: float = 0.1
    prune_synced_after_sync: bool = False

    # Server
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # API
    api_v1_prefix: str = "/api/v1"

    # Rate limiting
    rate_limit_enabled: bool = True

    @field_validator("sync_submit_timeout_seconds", "slow_connection_threshold_seconds")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @field_validator(
        "connectivity_check_interval_seconds",
        "reconnect_sync_delay_seconds",
        "enqueue_sync_delay_seconds",
    )
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @field_validator("remote_api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
