"""Configuration management using pydantic-settings."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DEPLOY_MONITOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # API Settings
    api_base_url: str = "http://localhost:8080"
    api_key: Optional[str] = None
    stream_base_url: Optional[str] = None  # Derived from api_base_url when unset

    # Timing (in seconds)
    poll_interval: float = 2.0
    action_refresh_delay: float = 1.0
    request_timeout: float = 30.0

    # Display
    line_ending: str = "\r\n"

    # Application Settings
    debug: bool = False
    log_level: str = "INFO"

    def resolve_stream_base_url(self) -> str:
        """Base URL for websocket log streams."""
        if self.stream_base_url:
            return self.stream_base_url.rstrip("/")
        return to_websocket_url(self.api_base_url)


def to_websocket_url(url: str) -> str:
    """Swap an http(s) scheme for the matching ws(s) scheme."""
    base = url.rstrip("/")
    if base.startswith("https://"):
        return "wss://" + base[len("https://"):]
    if base.startswith("http://"):
        return "ws://" + base[len("http://"):]
    return base


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
