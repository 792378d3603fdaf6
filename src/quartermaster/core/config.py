# quartermaster/core/config.py

from pathlib import Path
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from quartermaster.archive.builder import DEFAULT_EXCLUDES


def default_connection_file() -> Path:
    """Location of the connection record shared with other agent tools."""
    return Path.home() / ".agent.json"


class Settings(BaseSettings):
    connection_file: Path = Field(default_factory=default_connection_file)
    request_timeout: float = Field(default=30.0)
    archive_exclude: List[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDES))
    log_level: str = Field(default="WARNING")
    keyring_service: str = Field(default="quartermaster")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="QUARTERMASTER_",
        extra="ignore",
    )


def get_settings(**overrides) -> Settings:
    """Build settings from the environment, applying explicit overrides."""
    return Settings(**overrides)
