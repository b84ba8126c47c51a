"""
Configuration for the token repository.

``RepositorySettings`` reads the environment (``TOKEN_REPOSITORY_URL``,
``TOKEN_REPOSITORY_REFRESH_MS``); ``RepositoryOptions`` validates the
``{"Url": ..., "RefreshTime": ...}`` mapping accepted by
``DynamicTokenRepository.set_configuration``.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_REFRESH_MS = 20000


class RepositorySettings(BaseSettings):
    """Environment-driven repository settings."""

    model_config = SettingsConfigDict(env_prefix="TOKEN_REPOSITORY_", env_file=".env", extra="ignore")

    url: Optional[str] = Field(default=None, description="Backing resource locator")
    refresh_ms: int = Field(default=DEFAULT_REFRESH_MS, ge=0, description="0 disables watching")


class RepositoryOptions(BaseModel):
    """Recognized configuration options."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    url: Optional[str] = Field(default=None, alias="Url")
    refresh_time: int = Field(default=DEFAULT_REFRESH_MS, alias="RefreshTime", ge=0)
