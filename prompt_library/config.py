"""Application configuration — reads from environment variables, .env and Docker secrets."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings


def _read_secret(name: str) -> str | None:
    """Read a Docker Swarm secret from /run/secrets/."""
    secret_path = Path(f"/run/secrets/{name}")
    if secret_path.exists():
        return secret_path.read_text().strip()
    return None


class Settings(BaseSettings):
    """Application settings for the prompt library service."""

    data_dir: str = "~/.prompt-library"
    anthropic_api_key: str = ""
    anthropic_api_url: str = "https://api.anthropic.com/v1/messages"
    optimizer_model: str = "sonnet"
    port: int = 8400
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "env_prefix": "LIBRARY_"}

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if secret := _read_secret("anthropic_api_key"):
            self.anthropic_api_key = secret

    @property
    def data_path(self) -> Path:
        """Resolved directory holding the persisted documents."""
        return Path(self.data_dir).expanduser()


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
