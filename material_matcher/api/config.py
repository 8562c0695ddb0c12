"""
API Configuration
Settings and configuration for FastAPI application.
"""

import json
from typing import Any, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class APISettings(BaseSettings):
    """
    API configuration settings.

    Load from environment variables (and a .env file).
    """

    # API Info
    app_name: str = "Material Matcher API"
    version: str = "0.1.0"
    description: str = "Multi-field similarity retrieval for reusable construction materials"

    # Server settings
    host: str = Field(default="0.0.0.0", alias="API_HOST")
    port: int = Field(default=8000, alias="API_PORT")
    reload: bool = Field(default=False, alias="API_RELOAD")

    # CORS settings
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        alias="API_CORS_ORIGINS",
    )
    cors_allow_credentials: bool = True
    cors_allow_methods: List[str] = ["*"]
    cors_allow_headers: List[str] = ["*"]

    # Database settings
    database_url: str = Field(default="sqlite:///./materials.db", alias="DATABASE_URL")

    # Logging
    log_level: str = Field(default="INFO", alias="API_LOG_LEVEL")

    # Security
    require_api_key: bool = Field(default=False, alias="API_REQUIRE_KEY")
    api_keys: List[str] = Field(default=[], alias="API_KEYS")

    # Performance targets
    target_p95_latency_ms: int = 300

    # Vector index persistence
    index_persist: bool = Field(default=False, alias="INDEX_PERSIST")

    @field_validator("cors_origins", "api_keys", mode="before")
    @classmethod
    def parse_list(cls, v: Any) -> List[str]:
        """Parse lists from JSON string or comma-separated values."""
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                # Fall back to comma-separated list
                return [item.strip() for item in v.split(",") if item.strip()]
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra fields in .env file
        env_prefix="",
        validate_default=True,
        populate_by_name=True,  # Allow using both field name and alias
    )


# Global settings instance
_settings: Optional[APISettings] = None


def get_settings() -> APISettings:
    """Get global API settings (singleton)."""
    global _settings
    if _settings is None:
        _settings = APISettings()
    return _settings


def reset_settings() -> None:
    """Reset settings (useful for testing)."""
    global _settings
    _settings = None
