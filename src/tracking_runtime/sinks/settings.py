from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..models import Severity


class SocketSinkSettings(BaseSettings):
    """Environment-driven socket sink settings (``SOCKET_SINK_*``)."""

    model_config = SettingsConfigDict(env_prefix="SOCKET_SINK_", env_file=".env", extra="ignore")

    host: str = "localhost"
    port: int = Field(default=6400, ge=1, le=65535)
    connect_timeout: Optional[float] = Field(default=None, gt=0)
    threshold: Severity = Severity.NONE
    max_mps: float = Field(default=0, ge=0)
    max_bps: float = Field(default=0, ge=0)
    throttle_enabled: bool = True

    @field_validator("threshold", mode="before")
    @classmethod
    def _parse_threshold(cls, v):
        return Severity.parse(v)
