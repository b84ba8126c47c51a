from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    TOKEN_REPOSITORY_URL: Optional[str] = None
    SOCKET_SINK_HOST: str = "localhost"
    SOCKET_SINK_PORT: int = 6400
    LOG_LEVEL: str = "WARNING"

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
