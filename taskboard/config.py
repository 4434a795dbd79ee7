"""Application settings."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

VERSION = "1.0.0"


class Settings(BaseSettings):
    """Application settings."""

    database_url: str = Field(
        default="sqlite:///./taskboard.db",
        description="SQLAlchemy database URL",
    )

    sql_echo: bool = Field(
        default=False,
        description="Log every SQL statement",
    )

    log_level: str = Field(
        default="INFO",
        description="Level for the taskboard logger namespace",
    )

    log_file: Path | None = Field(
        default=None,
        description="Optional path to write logs to file",
    )

    host: str = "127.0.0.1"
    port: int = 8000

    model_config = {
        "env_prefix": "TASKBOARD_",
    }


@lru_cache
def get_settings() -> Settings:
    return Settings()
