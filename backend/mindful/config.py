"""
Mindful Companion - Configuration Management

Centralized configuration using Pydantic Settings.
Environment-specific values are loaded from environment variables.
"""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Hierarchy (highest to lowest priority):
    1. Environment variables
    2. .env file
    3. Default values
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_env: str = "development"
    app_debug: bool = True
    app_log_level: str = "INFO"
    log_json: bool = False  # JSON log lines (always on in production)

    # --- Server ---
    backend_host: str = "0.0.0.0"
    backend_port: int = 8000

    # --- Assistant Service ---
    # "dummy" = canned offline replies (default, no network)
    # "http" = POST payloads to assistant_url
    assistant_backend: str = "dummy"
    assistant_url: str = "http://localhost:8001/api/ai"
    assistant_timeout_seconds: float = 30.0
    dummy_latency_ms: float = 0.0

    # --- Sessions ---
    max_sessions: int = 100
    session_ttl_minutes: int = 120
    session_cleanup_interval_seconds: int = 60

    # --- Transcripts ---
    # Only written on demand (GET /transcript?save=true)
    transcript_dir: str = "./transcripts"

    # --- Privacy ---
    log_message_text: bool = False  # If False, logs carry text lengths only

    # --- Security ---
    allowed_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse comma-separated origins into list."""
        return [origin.strip() for origin in self.allowed_origins.split(",")]

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings instance.

    Use dependency injection in routes:
        settings: Settings = Depends(get_settings)
    """
    return Settings()
