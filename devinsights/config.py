"""Application settings loaded from environment variables.

Uses pydantic-settings for validation and .env file support.
Access the singleton via get_settings().
"""

import json
from functools import lru_cache
from typing import Literal, Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for the DevInsights backend."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "DevInsights API"
    version: str = "1.0.0"
    debug: bool = True
    log_level: str = "INFO"
    stage: str = "dev"

    # CORS: comma-separated (https://a.com,https://b.com) or a JSON array.
    # Stored as str so pydantic-settings doesn't JSON-decode plain comma values.
    cors_origins: str = "http://localhost:3000,http://localhost:8000"

    def get_cors_origins(self) -> list[str]:
        """Parse CORS origins from string: JSON array or comma-separated."""
        v = self.cors_origins.strip()
        if not v:
            return []
        if v.startswith("["):
            try:
                items = json.loads(v)
                raw = [x.strip() for x in items if isinstance(x, str) and x.strip()]
            except json.JSONDecodeError:
                raw = [x.strip() for x in v.split(",") if x.strip()]
        else:
            raw = [x.strip() for x in v.split(",") if x.strip()]
        return [o.rstrip("/") for o in raw]

    # Hot tier
    hot_store_backend: Literal["memory", "redis"] = "memory"
    redis_url: str = "redis://localhost:6379"
    hot_cache_ttl_seconds: int = 3600
    hot_cache_key_prefix: str = "analytics"

    # Cold tier
    cold_store_backend: Literal["file", "dynamodb"] = "file"
    cold_store_dir: str = ".mock-dynamodb"
    cold_cache_ttl_days: int = 30
    cold_cache_category: str = "dashboard"
    dynamodb_table_name: Optional[str] = None
    dynamodb_endpoint_url: Optional[str] = None
    aws_region: str = "ap-south-1"

    @model_validator(mode="after")
    def _default_table_name(self) -> "Settings":
        """Derive the DynamoDB table name from the deployment stage."""
        if not self.dynamodb_table_name:
            self.dynamodb_table_name = f"DevInsights-AnalyticsCache-{self.stage}"
        return self

    # GitHub
    github_token: Optional[str] = None
    github_api_url: str = "https://api.github.com"
    github_timeout_seconds: float = 10.0

    # Auth
    jwt_secret: Optional[str] = None
    jwt_algorithm: str = "HS256"


@lru_cache()
def get_settings() -> Settings:
    """Return cached Settings singleton."""
    return Settings()


def reset_settings() -> None:
    """Clear the settings cache. Used in tests."""
    get_settings.cache_clear()
