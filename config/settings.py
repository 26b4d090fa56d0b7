"""Configuration management using pydantic-settings."""
from pathlib import Path
from typing import Dict

from pydantic_settings import BaseSettings


# Per-path TTLs in milliseconds (longest matching prefix wins)
DEFAULT_PATH_TTLS_MS: Dict[str, int] = {
    "/theses": 60_000,           # 1 minute
    "/theses/stats": 120_000,    # 2 minutes
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Backend selection
    environment: str = "development"
    production_api_url: str = "https://backend-6c5g.onrender.com/api"
    development_api_url: str = "http://localhost:5000/api"

    # Transport
    request_timeout_seconds: float = 30.0
    health_timeout_seconds: float = 5.0
    backend_recheck_interval_seconds: float = 30.0

    # Cache settings
    cache_enabled: bool = True
    cache_default_ttl_ms: int = 30_000
    cache_path_ttls_ms: Dict[str, int] = dict(DEFAULT_PATH_TTLS_MS)
    coalesce_timeout_seconds: float = 30.0

    # Persisted login (the browser kept this in localStorage)
    session_file: Path = Path("./.plagcheck/session.json")

    log_level: str = "INFO"

    class Config:
        env_prefix = "PLAGCHECK_"
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in ("production", "prod")

    @property
    def base_url(self) -> str:
        """Backend API URL for the configured environment."""
        if self.is_production:
            return self.production_api_url
        return self.development_api_url


settings = Settings()
