"""Configuration management for the license console."""

import os
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator, ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    model_config = ConfigDict(
        env_file=".env" if os.getenv("ENVIRONMENT") != "test" else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow"
    )

    # Application
    app_name: str = "License Console"
    app_version: str = "0.1.0"
    environment: str = Field(default="development", env="ENVIRONMENT")
    log_level: str = Field(default="INFO", env="LOG_LEVEL")

    # Backend collaborator
    api_base_url: str = Field(default="http://localhost:8080", env="API_BASE_URL")
    api_token: Optional[str] = Field(default=None, env="API_TOKEN")
    request_timeout: float = Field(default=10.0, env="REQUEST_TIMEOUT")

    # Retry
    max_retries: int = Field(default=3, env="MAX_RETRIES")
    retry_base_delay: float = Field(default=0.5, env="RETRY_BASE_DELAY")
    retry_max_delay: float = Field(default=10.0, env="RETRY_MAX_DELAY")

    # Presentation
    summary_max_labels: int = Field(
        default=3,
        env="SUMMARY_MAX_LABELS",
        description="Permission labels shown before the overflow chip",
    )

    @field_validator("api_base_url", mode="before")
    @classmethod
    def validate_api_base_url(cls, v):
        url = str(v).strip()
        return url.rstrip("/")

    @field_validator("api_token", mode="before")
    @classmethod
    def validate_api_token(cls, v):
        if v is None:
            return None
        token = str(v).strip()
        return token or None

    @field_validator("summary_max_labels")
    @classmethod
    def validate_summary_max_labels(cls, v):
        if v < 1:
            raise ValueError("summary_max_labels must be at least 1")
        return v

    def auth_headers(self) -> dict:
        """Headers carrying the bearer token, if one is configured."""
        if self.api_token:
            return {"Authorization": f"Bearer {self.api_token}"}
        return {}


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
