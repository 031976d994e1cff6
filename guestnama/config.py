"""
Client Configuration

Settings for the GuestNama client, loaded from environment variables.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings loaded from GUESTNAMA_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="GUESTNAMA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Remote backend (single POST endpoint)
    backend_url: str = "http://localhost:8080/exec"
    request_timeout: float = 30.0
    user_agent: str = "GuestNama-Client/1.0"

    # Durable local storage
    profile_dir: Path = Path.home() / ".guestnama"
    storage_file: str = "storage.json"
    session_key: str = "guestnama_session"

    # Session verification
    heartbeat_interval_seconds: float = 300.0  # 5 minutes
    heartbeat_enabled: bool = True
    verify_on_restore: bool = True

    # Logging
    log_level: str = "INFO"

    @property
    def storage_path(self) -> Path:
        """Full path of the local storage file."""
        return self.profile_dir.expanduser() / self.storage_file


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
