"""Environment-driven settings for the collaborator transport and logging.

Read from ``LEASING_*`` environment variables or a local ``.env`` file.
``get_settings()`` is cached, so there is one instance per process.
"""

from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Leasing core settings from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LEASING_", env_file=".env", case_sensitive=False,
    )

    # Collaborator API
    api_base_url: str = "http://localhost:3001/api"
    api_token: Optional[str] = None
    api_timeout_seconds: float = 30.0

    # Observability
    log_level: str = "INFO"
    log_format: str = "text"

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    return Settings()
